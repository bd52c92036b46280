from __future__ import annotations

from datetime import date, datetime, time
from typing import TypeAlias
import re
import tomllib

from sloc_guard.errors import TomlSyntaxError

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

_LOCATION_RE = re.compile(r"\(at line (\d+), column (\d+)\)")


def parse_toml(text: str, *, origin: str) -> TomlTable:
    """Parse a single TOML document, keeping line/column for syntax errors."""
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        line = getattr(exc, "lineno", None)
        column = getattr(exc, "colno", None)
        message = getattr(exc, "msg", None) or str(exc)
        if line is None:
            match = _LOCATION_RE.search(str(exc))
            if match is not None:
                line, column = int(match.group(1)), int(match.group(2))
        message = _LOCATION_RE.sub("", message).strip()
        raise TomlSyntaxError(
            origin=origin, line=line, column=column, parser_message=message
        ) from exc
