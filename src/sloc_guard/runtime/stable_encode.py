from __future__ import annotations

import hashlib
import json
from typing import Mapping


def stable_compact_text(value: object) -> str:
    """Deterministic text encoder for hash surfaces.

    Mapping keys are sorted lexically; sequence order is preserved and
    tuples normalize to lists.
    """
    return json.dumps(
        stable_json_value(value),
        separators=(",", ":"),
        sort_keys=False,
        ensure_ascii=True,
    )


def stable_json_value(value: object) -> object:
    if isinstance(value, Mapping):
        return {key: stable_json_value(value[key]) for key in sorted(str(k) for k in value)}
    if isinstance(value, (list, tuple)):
        return [stable_json_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    raise TypeError(f"stable_json_value does not support value type {type(value).__name__}")


def sha256_hex(data: bytes | str) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return hashlib.sha256(raw).hexdigest()
