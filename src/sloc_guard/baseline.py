"""Grandfathered violations stored in ``baseline.json``."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

from sloc_guard.checker.result import CheckResult, Failed, Grandfathered, ViolationKind
from sloc_guard.errors import ConfigError, FileAccessError
from sloc_guard.json_types import JSONObject
from sloc_guard.runtime.json_io import dump_json_pretty, load_json_object_bytes
from sloc_guard.state import DEFAULT_LOCK_TIMEOUT_MS, WriteOutcome, atomic_write, read_locked

BASELINE_VERSION = 1


class UpdateMode(str, Enum):
    ALL = "all"
    CONTENT = "content"
    STRUCTURE = "structure"
    NEW = "new"


class StructureCountKind(str, Enum):
    FILES = "files"
    DIRS = "dirs"

    @classmethod
    def from_violation(cls, kind: ViolationKind | None) -> "StructureCountKind | None":
        if kind is ViolationKind.FILE_COUNT:
            return cls.FILES
        if kind is ViolationKind.DIR_COUNT:
            return cls.DIRS
        return None


@dataclass(frozen=True)
class ContentEntry:
    lines: int
    content_hash: str

    def to_payload(self) -> JSONObject:
        return {"type": "content", "lines": self.lines, "hash": self.content_hash}


@dataclass(frozen=True)
class StructureEntry:
    kind: StructureCountKind
    count: int

    def to_payload(self) -> JSONObject:
        return {"type": "structure", "violation": self.kind.value, "count": self.count}


BaselineEntry = ContentEntry | StructureEntry


def _entry_from_payload(path: str, raw: object) -> BaselineEntry:
    if not isinstance(raw, dict):
        raise ValueError(f"entry for '{path}' must be an object")
    entry_type = raw.get("type", "content")
    if entry_type == "content":
        lines, content_hash = raw.get("lines"), raw.get("hash")
        if not isinstance(lines, int) or not isinstance(content_hash, str):
            raise ValueError(f"content entry for '{path}' needs integer lines and string hash")
        return ContentEntry(lines, content_hash)
    if entry_type == "structure":
        count = raw.get("count")
        if not isinstance(count, int):
            raise ValueError(f"structure entry for '{path}' needs an integer count")
        try:
            kind = StructureCountKind(raw.get("violation"))
        except ValueError:
            raise ValueError(
                f"structure entry for '{path}' has unknown violation {raw.get('violation')!r}"
            ) from None
        return StructureEntry(kind, count)
    raise ValueError(f"entry for '{path}' has unknown type {entry_type!r}")


@dataclass
class Baseline:
    version: int = BASELINE_VERSION
    files: dict[str, BaselineEntry] = field(default_factory=dict)

    def __contains__(self, path: str) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def get(self, path: str) -> BaselineEntry | None:
        return self.files.get(path)

    def set_content(self, path: str, lines: int, content_hash: str) -> None:
        self.files[path] = ContentEntry(lines, content_hash)

    def set_structure(self, path: str, kind: StructureCountKind, count: int) -> None:
        self.files[path] = StructureEntry(kind, count)

    def remove(self, path: str) -> BaselineEntry | None:
        return self.files.pop(path, None)

    def to_payload(self) -> JSONObject:
        return {
            "version": self.version,
            "files": {path: entry.to_payload() for path, entry in self.files.items()},
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Baseline":
        version = payload.get("version", BASELINE_VERSION)
        files = payload.get("files", {})
        if not isinstance(version, int):
            raise ValueError("baseline version must be an integer")
        if not isinstance(files, dict):
            raise ValueError("baseline files must be an object")
        return cls(
            version=version,
            files={str(path): _entry_from_payload(str(path), raw) for path, raw in files.items()},
        )


def load_baseline(path: Path, *, required: bool) -> Baseline | None:
    """Read ``path``; a missing file is an error only when ``required``."""
    try:
        data = read_locked(path, timeout_ms=DEFAULT_LOCK_TIMEOUT_MS)
    except OSError as exc:
        raise FileAccessError(path=path, operation="read baseline", cause=exc) from exc
    if data is None:
        if required:
            raise ConfigError(
                f"Baseline file not found: {path}",
                detail="Create one with --update-baseline all",
            )
        return None
    payload = load_json_object_bytes(data)
    if not payload:
        raise ConfigError(f"Baseline file is not a JSON object: {path}")
    try:
        return Baseline.from_payload(payload)
    except ValueError as exc:
        raise ConfigError(f"Invalid baseline file {path}", detail=str(exc)) from exc


def save_baseline(baseline: Baseline, path: Path) -> WriteOutcome:
    text = dump_json_pretty(baseline.to_payload())
    try:
        return atomic_write(path, text.encode("utf-8"), description="baseline file")
    except OSError as exc:
        raise FileAccessError(path=path, operation="write baseline", cause=exc) from exc


def _grandfathers(entry: BaselineEntry, result: Failed, content_hash: str | None) -> bool:
    if isinstance(entry, ContentEntry):
        return not result.is_structure and content_hash == entry.content_hash
    kind = StructureCountKind.from_violation(result.violation_category)
    return kind is entry.kind and result.actual <= entry.count


def apply_baseline(
    results: Iterable[CheckResult],
    baseline: Baseline,
    hashes: Mapping[str, str],
) -> list[CheckResult]:
    """Demote ``Failed`` results covered by a matching baseline entry.

    Content entries match on the file's content hash. Structure entries match
    on violation kind while the count has not grown past the recorded one.
    """
    applied: list[CheckResult] = []
    for result in results:
        if isinstance(result, Failed):
            entry = baseline.get(result.path)
            if entry is not None and _grandfathers(entry, result, hashes.get(result.path)):
                applied.append(result.grandfather())
                continue
        applied.append(result)
    return applied


def _is_failing(result: CheckResult) -> bool:
    return isinstance(result, (Failed, Grandfathered))


def update_baseline(
    results: Iterable[CheckResult],
    mode: UpdateMode,
    hashes: Mapping[str, str],
    existing: Baseline | None = None,
) -> Baseline:
    """Build the baseline that ``--update-baseline MODE`` writes.

    ``content`` and ``structure`` rebuild their own kind of entry and keep
    the other kind from ``existing``. ``new`` only adds paths not yet listed.
    """
    if mode is UpdateMode.NEW:
        updated = Baseline(files=dict(existing.files) if existing else {})
    else:
        updated = Baseline()
        if existing is not None and mode is not UpdateMode.ALL:
            keep_structure = mode is UpdateMode.CONTENT
            for path, entry in existing.files.items():
                if isinstance(entry, StructureEntry) == keep_structure:
                    updated.files[path] = entry

    for result in results:
        if not _is_failing(result):
            continue
        if mode is UpdateMode.CONTENT and result.is_structure:
            continue
        if mode is UpdateMode.STRUCTURE and not result.is_structure:
            continue
        if mode is UpdateMode.NEW and result.path in updated:
            continue
        if result.is_structure:
            kind = StructureCountKind.from_violation(result.violation_category)
            if kind is not None:
                updated.set_structure(result.path, kind, result.actual)
            continue
        content_hash = hashes.get(result.path)
        if content_hash is not None:
            updated.set_content(result.path, result.actual, content_hash)
    return updated


def stale_entries(results: Iterable[CheckResult], baseline: Baseline) -> list[str]:
    """Baseline paths with no current failure; the ratchet reports or drops them."""
    failing = {result.path for result in results if _is_failing(result)}
    return sorted(path for path in baseline.files if path not in failing)


def tighten(baseline: Baseline, stale: Iterable[str]) -> Baseline:
    tightened = Baseline(version=baseline.version, files=dict(baseline.files))
    for path in stale:
        tightened.remove(path)
    return tightened
