"""Recursive ``extends`` resolution.

Each document in the chain is parsed on its own so syntax errors keep their
original line numbers; only then are the parsed tables merged base-first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from sloc_guard.config.merge import (
    merge_tables,
    strip_reset_markers,
    validate_reset_positions,
)
from sloc_guard.config.presets import PRESET_PREFIX, load_preset
from sloc_guard.config.remote import FetchPolicy, Opener, fetch_remote_config, is_remote_url
from sloc_guard.config.toml_io import TomlTable, parse_toml
from sloc_guard.errors import (
    CircularExtendsError,
    ExtendsResolutionError,
    ExtendsTooDeepError,
    FileAccessError,
    TypeMismatchError,
)

MAX_EXTENDS_DEPTH = 10
EXTENDS_KEYS = ("extends", "extends_sha256")


@dataclass(frozen=True)
class ConfigSource:
    kind: str
    location: str

    def __str__(self) -> str:
        return self.location

    @classmethod
    def file(cls, path: Path) -> "ConfigSource":
        return cls("file", str(path))

    @classmethod
    def remote(cls, url: str) -> "ConfigSource":
        return cls("remote", url)

    @classmethod
    def preset(cls, name: str) -> "ConfigSource":
        return cls("preset", f"{PRESET_PREFIX}{name}")

    @classmethod
    def builtin(cls) -> "ConfigSource":
        return cls("builtin", "<defaults>")


@dataclass
class ResolvedToml:
    value: TomlTable
    sources: list[ConfigSource] = field(default_factory=list)

    def origin_text(self) -> str:
        return " -> ".join(str(source) for source in self.sources) or "<defaults>"


def _string_field(table: TomlTable, key: str, source: ConfigSource) -> str | None:
    value = table.get(key)
    if value is None or isinstance(value, str):
        return value
    raise TypeMismatchError(
        field=key, expected="string", actual=type(value).__name__, origin=str(source)
    )


def _read_local(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileAccessError(path=path, operation="read config", cause=exc) from exc
    except UnicodeDecodeError as exc:
        raise FileAccessError(
            path=path, operation="decode config", cause=OSError(str(exc))
        ) from exc


class ExtendsResolver:
    def __init__(
        self,
        *,
        remote_cache_dir: Path | None = None,
        policy: FetchPolicy = FetchPolicy.NORMAL,
        opener: Opener | None = None,
    ) -> None:
        self.remote_cache_dir = remote_cache_dir
        self.policy = policy
        self.opener = opener

    def _fetch(self, url: str, expected_sha256: str | None) -> str:
        kwargs: dict[str, object] = {}
        if self.opener is not None:
            kwargs["opener"] = self.opener
        return fetch_remote_config(
            url,
            cache_dir=self.remote_cache_dir,
            policy=self.policy,
            expected_sha256=expected_sha256,
            **kwargs,
        )

    def resolve_text(
        self,
        text: str,
        *,
        source: ConfigSource,
        base_dir: Path | None,
        visited: list[str] | None = None,
    ) -> ResolvedToml:
        resolved = self._resolve(
            text,
            source=source,
            base_dir=base_dir,
            depth=0,
            visited=list(visited or [str(source)]),
        )
        validate_reset_positions(resolved.value)
        stripped = strip_reset_markers(resolved.value)
        assert isinstance(stripped, dict)
        for key in EXTENDS_KEYS:
            stripped.pop(key, None)
        return ResolvedToml(value=stripped, sources=resolved.sources)

    def _resolve(
        self,
        text: str,
        *,
        source: ConfigSource,
        base_dir: Path | None,
        depth: int,
        visited: list[str],
    ) -> ResolvedToml:
        table = parse_toml(text, origin=str(source))
        validate_reset_positions(table)
        extends = _string_field(table, "extends", source)
        expected_sha256 = _string_field(table, "extends_sha256", source)
        own = {key: value for key, value in table.items() if key not in EXTENDS_KEYS}
        if extends is None:
            return ResolvedToml(value=own, sources=[source])

        if extends.startswith(PRESET_PREFIX):
            name = extends[len(PRESET_PREFIX) :]
            parent = ResolvedToml(value=load_preset(name), sources=[ConfigSource.preset(name)])
        else:
            parent = self._resolve_reference(
                extends,
                expected_sha256=expected_sha256,
                base_dir=base_dir,
                depth=depth + 1,
                visited=visited,
            )
        return ResolvedToml(
            value=merge_tables(parent.value, own),
            sources=parent.sources + [source],
        )

    def _resolve_reference(
        self,
        spec: str,
        *,
        expected_sha256: str | None,
        base_dir: Path | None,
        depth: int,
        visited: list[str],
    ) -> ResolvedToml:
        if is_remote_url(spec):
            key = spec
        else:
            candidate = Path(spec).expanduser()
            if not candidate.is_absolute():
                if base_dir is None:
                    raise ExtendsResolutionError(path=spec, base="remote config")
                candidate = base_dir / candidate
            key = str(candidate.resolve())
        if depth > MAX_EXTENDS_DEPTH:
            raise ExtendsTooDeepError(
                depth=depth, max_depth=MAX_EXTENDS_DEPTH, chain=visited + [key]
            )
        if key in visited:
            raise CircularExtendsError(visited + [key])
        visited.append(key)

        if is_remote_url(spec):
            text = self._fetch(spec, expected_sha256)
            return self._resolve(
                text,
                source=ConfigSource.remote(spec),
                base_dir=None,
                depth=depth,
                visited=visited,
            )
        path = Path(key)
        return self._resolve(
            _read_local(path),
            source=ConfigSource.file(path),
            base_dir=path.parent,
            depth=depth,
            visited=visited,
        )
