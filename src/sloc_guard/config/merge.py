"""Merging of raw TOML tables along an extends chain.

Tables merge recursively, arrays append (parent first, then child) and any
other value is replaced by the child. A child array starting with the
``$reset`` sentinel discards the parent array.
"""

from __future__ import annotations

from sloc_guard.config.toml_io import TomlTable, TomlValue
from sloc_guard.errors import ConfigError

RESET_MARKER = "$reset"
_RESET_KEYS = ("pattern", "scope")


def _is_reset_element(value: TomlValue) -> bool:
    if isinstance(value, str):
        return value == RESET_MARKER
    if isinstance(value, dict):
        return any(value.get(key) == RESET_MARKER for key in _RESET_KEYS)
    return False


def has_reset_marker(values: list[TomlValue]) -> bool:
    return bool(values) and _is_reset_element(values[0])


def merge_values(parent: TomlValue, child: TomlValue) -> TomlValue:
    if isinstance(parent, dict) and isinstance(child, dict):
        merged: TomlTable = dict(parent)
        for key, child_value in child.items():
            if key in merged:
                merged[key] = merge_values(merged[key], child_value)
            else:
                merged[key] = child_value
        return merged
    if isinstance(parent, list) and isinstance(child, list):
        if has_reset_marker(child):
            return list(child[1:])
        return list(parent) + list(child)
    return child


def merge_tables(parent: TomlTable, child: TomlTable) -> TomlTable:
    merged = merge_values(parent, child)
    assert isinstance(merged, dict)
    return merged


def has_any_reset_markers(value: TomlValue) -> bool:
    if isinstance(value, dict):
        return any(has_any_reset_markers(item) for item in value.values())
    if isinstance(value, list):
        return any(_is_reset_element(item) or has_any_reset_markers(item) for item in value)
    return False


def validate_reset_positions(value: TomlValue, path: str = "") -> None:
    """Raise ``ConfigError`` when a sentinel appears anywhere but first."""
    if isinstance(value, dict):
        for key, item in value.items():
            validate_reset_positions(item, f"{path}.{key}" if path else key)
        return
    if isinstance(value, list):
        for index, item in enumerate(value):
            if index > 0 and _is_reset_element(item):
                raise ConfigError(
                    f"'{RESET_MARKER}' must be the first element in array '{path}', "
                    f"found at position {index}"
                )
            validate_reset_positions(item, f"{path}[{index}]")


def strip_reset_markers(value: TomlValue) -> TomlValue:
    if isinstance(value, dict):
        return {key: strip_reset_markers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [strip_reset_markers(item) for item in value if not _is_reset_element(item)]
    return value
