from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
import os
import re
import sys

from pydantic import ValidationError

from sloc_guard import console
from sloc_guard.config.extends import (
    EXTENDS_KEYS,
    ConfigSource,
    ExtendsResolver,
    ResolvedToml,
)
from sloc_guard.config.merge import (
    has_any_reset_markers,
    strip_reset_markers,
    validate_reset_positions,
)
from sloc_guard.config.model import CONFIG_VERSION, Config
from sloc_guard.config.remote import FetchPolicy, Opener
from sloc_guard.config.toml_io import TomlTable, TomlValue, parse_toml
from sloc_guard.config.validation import validate_config
from sloc_guard.errors import (
    ConfigError,
    FileAccessError,
    SemanticError,
    TypeMismatchError,
)
from sloc_guard.state import CONFIG_FILE_NAME, remote_cache_dir

APP_DIR_NAME = "sloc-guard"
USER_CONFIG_FILE = "config.toml"

_EXPECTED_BY_ERROR_TYPE = {
    "int_type": "integer",
    "int_parsing": "integer",
    "int_from_float": "integer",
    "float_type": "float",
    "float_parsing": "float",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "string_type": "string",
    "list_type": "array",
    "dict_type": "table",
    "model_type": "table",
    "model_attributes_type": "table",
    "date_type": "date (YYYY-MM-DD)",
    "date_parsing": "date (YYYY-MM-DD)",
    "date_from_datetime_parsing": "date (YYYY-MM-DD)",
    "date_from_datetime_inexact": "date (YYYY-MM-DD)",
}


def user_config_dir() -> Path:
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        return Path(base) / APP_DIR_NAME if base else Path.home() / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base_dir = Path(xdg) if xdg else Path.home() / ".config"
    return base_dir / APP_DIR_NAME


def discover_config_path(cwd: Path) -> Path | None:
    local = cwd / CONFIG_FILE_NAME
    if local.is_file():
        return local
    user = user_config_dir() / USER_CONFIG_FILE
    if user.is_file():
        return user
    return None


@dataclass
class LoadedConfig:
    config: Config
    sources: list[ConfigSource] = field(default_factory=list)
    path: Path | None = None

    def origin_text(self) -> str:
        return " -> ".join(str(s) for s in self.sources) or "<defaults>"


def _toml_type_name(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "table"
    if isinstance(value, (date, datetime)):
        return "datetime"
    return type(value).__name__


def _dotted(loc: tuple[object, ...]) -> str:
    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text = f"{text}.{part}" if text else str(part)
    return text


def _locate_key(text: str, loc: tuple[object, ...]) -> int | None:
    keys = [part for part in loc if isinstance(part, str)]
    if not keys:
        return None
    pattern = re.compile(rf"^\s*{re.escape(keys[-1])}\s*=")
    for number, line in enumerate(text.splitlines(), start=1):
        if pattern.match(line):
            return number
    return None


def build_config(
    table: TomlTable,
    *,
    origin: str,
    source_text: str | None = None,
) -> Config:
    """Turn a merged raw table into a typed, semantically validated ``Config``."""
    check_version(table.get("version"), origin=origin)
    try:
        config = Config.model_validate(table)
    except ValidationError as exc:
        raise _convert_validation_error(exc, origin=origin, source_text=source_text) from exc
    validate_config(config, origin=origin)
    return config


def _convert_validation_error(
    exc: ValidationError, *, origin: str, source_text: str | None
) -> Exception:
    first = exc.errors()[0]
    loc = tuple(first.get("loc", ()))
    field_path = _dotted(loc)
    located = origin
    if source_text is not None:
        line = _locate_key(source_text, loc)
        if line is not None:
            located = f"{origin}:{line}"
    error_type = first.get("type", "")
    if error_type == "extra_forbidden":
        return SemanticError(
            field=field_path,
            message="unknown field",
            suggestion="Remove the field or check its spelling against the documented keys",
            origin=located,
        )
    if error_type == "missing":
        return SemanticError(
            field=field_path,
            message="required field is missing",
            suggestion=f"Add '{loc[-1]}' to this entry",
            origin=located,
        )
    if error_type == "literal_error":
        expected = str(first.get("ctx", {}).get("expected", "one of the allowed values"))
    else:
        expected = _EXPECTED_BY_ERROR_TYPE.get(error_type, str(first.get("msg", "")))
    return TypeMismatchError(
        field=field_path,
        expected=expected,
        actual=_toml_type_name(first.get("input")),
        origin=located,
    )


def check_version(version: TomlValue, *, origin: str) -> None:
    if version is None:
        return
    if not isinstance(version, str):
        raise TypeMismatchError(
            field="version",
            expected="string",
            actual=_toml_type_name(version),
            origin=origin,
        )
    if version != CONFIG_VERSION:
        raise ConfigError(
            f"Unsupported config version '{version}'. Only version '{CONFIG_VERSION}' "
            "is supported. Please update your configuration to the V2 format."
        )


class ConfigLoader:
    def __init__(
        self,
        *,
        cwd: Path,
        project_root: Path | None = None,
        policy: FetchPolicy = FetchPolicy.NORMAL,
        opener: Opener | None = None,
    ) -> None:
        self.cwd = cwd
        self.project_root = project_root if project_root is not None else cwd
        self.policy = policy
        self.opener = opener

    def _resolver(self) -> ExtendsResolver:
        return ExtendsResolver(
            remote_cache_dir=remote_cache_dir(self.project_root),
            policy=self.policy,
            opener=self.opener,
        )

    def load(
        self,
        config_path: Path | None = None,
        *,
        no_config: bool = False,
        no_extends: bool = False,
    ) -> LoadedConfig:
        if no_config:
            return LoadedConfig(config=Config(), sources=[ConfigSource.builtin()])
        path = config_path if config_path is not None else discover_config_path(self.cwd)
        if path is None:
            console.debug("no config file found; using built-in defaults")
            return LoadedConfig(config=Config(), sources=[ConfigSource.builtin()])
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FileAccessError(path=path, operation="read config", cause=exc) from exc
        console.debug(f"loading config from {path}")
        return self.load_text(text, path=path, no_extends=no_extends)

    def load_text(
        self, text: str, *, path: Path, no_extends: bool = False
    ) -> LoadedConfig:
        source = ConfigSource.file(path.resolve())
        table = parse_toml(text, origin=str(source))
        chained = "extends" in table or has_any_reset_markers(table)
        if no_extends or not chained:
            validate_reset_positions(table)
            stripped = strip_reset_markers(table)
            assert isinstance(stripped, dict)
            if no_extends:
                for key in EXTENDS_KEYS:
                    stripped.pop(key, None)
            resolved = ResolvedToml(value=stripped, sources=[source])
            config = build_config(
                resolved.value, origin=str(source), source_text=text
            )
            return LoadedConfig(config=config, sources=resolved.sources, path=path)
        resolved = self._resolver().resolve_text(
            text,
            source=source,
            base_dir=path.resolve().parent,
            visited=[str(path.resolve())],
        )
        config = build_config(resolved.value, origin=resolved.origin_text())
        return LoadedConfig(config=config, sources=resolved.sources, path=path)
