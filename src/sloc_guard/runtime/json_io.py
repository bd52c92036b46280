from __future__ import annotations

import json
from typing import Mapping


def canonicalize_json(value: object) -> object:
    if isinstance(value, Mapping):
        return {
            key: canonicalize_json(value[key])
            for key in sorted(str(k) for k in value)
        }
    if isinstance(value, (list, tuple)):
        return [canonicalize_json(item) for item in value]
    return value


def load_json_object_bytes(data: bytes) -> dict[str, object]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeError, json.JSONDecodeError):
        return {}
    if not isinstance(payload, Mapping):
        return {}
    return dict(payload)


def dump_json_pretty(payload: object) -> str:
    return json.dumps(canonicalize_json(payload), indent=2, sort_keys=False) + "\n"
