"""Snapshot history kept in ``history.json``."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable
import time

from sloc_guard import console
from sloc_guard.config.model import TrendConfig
from sloc_guard.errors import FileAccessError
from sloc_guard.json_types import JSONObject
from sloc_guard.runtime.json_io import dump_json_pretty, load_json_object_bytes
from sloc_guard.state import DEFAULT_LOCK_TIMEOUT_MS, WriteOutcome, atomic_write, read_locked
from sloc_guard.stats import ProjectStatistics

HISTORY_VERSION = 1
SECONDS_PER_DAY = 86400

Clock = Callable[[], float]


def now_secs(clock: Clock = time.time) -> int:
    return int(clock())


@dataclass(frozen=True)
class TrendEntry:
    timestamp: int
    total_files: int
    total_lines: int
    code: int
    comment: int
    blank: int
    git_ref: str | None = None

    @classmethod
    def from_stats(cls, stats: ProjectStatistics, timestamp: int) -> "TrendEntry":
        totals = stats.totals
        return cls(
            timestamp=timestamp,
            total_files=stats.total_files,
            total_lines=totals.total,
            code=totals.code,
            comment=totals.comment,
            blank=totals.blank,
        )

    def to_payload(self) -> JSONObject:
        payload: JSONObject = {
            "timestamp": self.timestamp,
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "code": self.code,
            "comment": self.comment,
            "blank": self.blank,
        }
        if self.git_ref is not None:
            payload["git_ref"] = self.git_ref
        return payload

    @classmethod
    def from_payload(cls, raw: object) -> "TrendEntry":
        if not isinstance(raw, dict):
            raise ValueError("history entry must be an object")
        values: dict[str, int] = {}
        for name in ("timestamp", "total_files", "total_lines", "code", "comment", "blank"):
            value = raw.get(name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"history entry field {name} must be an integer")
            values[name] = value
        git_ref = raw.get("git_ref")
        return cls(**values, git_ref=git_ref if isinstance(git_ref, str) else None)


@dataclass(frozen=True)
class TrendDelta:
    files: int
    lines: int
    code: int
    comment: int
    blank: int
    previous_timestamp: int

    @classmethod
    def between(cls, previous: TrendEntry, current: TrendEntry) -> "TrendDelta":
        return cls(
            files=current.total_files - previous.total_files,
            lines=current.total_lines - previous.total_lines,
            code=current.code - previous.code,
            comment=current.comment - previous.comment,
            blank=current.blank - previous.blank,
            previous_timestamp=previous.timestamp,
        )

    def to_payload(self) -> JSONObject:
        return {
            "files": self.files,
            "lines": self.lines,
            "code": self.code,
            "comment": self.comment,
            "blank": self.blank,
            "previous_timestamp": self.previous_timestamp,
        }


@dataclass
class TrendHistory:
    version: int = HISTORY_VERSION
    entries: list[TrendEntry] = field(default_factory=list)

    def latest(self) -> TrendEntry | None:
        return self.entries[-1] if self.entries else None

    def at_or_before(self, timestamp: int) -> TrendEntry | None:
        for entry in reversed(self.entries):
            if entry.timestamp <= timestamp:
                return entry
        return None

    def delta(self, current: TrendEntry) -> TrendDelta | None:
        previous = self.latest()
        return TrendDelta.between(previous, current) if previous is not None else None

    def delta_since(self, current: TrendEntry, seconds: int) -> TrendDelta | None:
        previous = self.at_or_before(current.timestamp - seconds)
        return TrendDelta.between(previous, current) if previous is not None else None

    def should_add(self, config: TrendConfig, now: int) -> bool:
        latest = self.latest()
        if config.min_interval_secs is None or latest is None:
            return True
        return now - latest.timestamp >= config.min_interval_secs

    def apply_retention(self, config: TrendConfig, now: int) -> int:
        """Drop entries older than ``max_age_days``, then trim to ``max_entries``."""
        before = len(self.entries)
        if config.max_age_days is not None:
            cutoff = now - config.max_age_days * SECONDS_PER_DAY
            self.entries = [e for e in self.entries if e.timestamp >= cutoff]
        if config.max_entries is not None and len(self.entries) > config.max_entries:
            self.entries = self.entries[len(self.entries) - config.max_entries :]
        return before - len(self.entries)

    def to_payload(self) -> JSONObject:
        return {"version": self.version, "entries": [e.to_payload() for e in self.entries]}


def load_history(path: Path) -> TrendHistory:
    """Missing or malformed history starts over empty."""
    try:
        data = read_locked(path, timeout_ms=DEFAULT_LOCK_TIMEOUT_MS)
    except OSError as exc:
        console.warn(f"could not read history {path}: {exc}")
        return TrendHistory()
    if data is None:
        return TrendHistory()
    payload = load_json_object_bytes(data)
    raw_entries = payload.get("entries", [])
    if not isinstance(raw_entries, list):
        console.warn(f"ignoring malformed history {path}")
        return TrendHistory()
    try:
        entries = [TrendEntry.from_payload(raw) for raw in raw_entries]
    except ValueError as exc:
        console.warn(f"ignoring malformed history {path}: {exc}")
        return TrendHistory()
    entries.sort(key=lambda e: e.timestamp)
    return TrendHistory(entries=entries)


def save_history(history: TrendHistory, path: Path) -> WriteOutcome:
    text = dump_json_pretty(history.to_payload())
    try:
        return atomic_write(path, text.encode("utf-8"), description="history file")
    except OSError as exc:
        raise FileAccessError(path=path, operation="write history", cause=exc) from exc


@dataclass(frozen=True)
class SnapshotOutcome:
    entry: TrendEntry
    recorded: bool
    reason: str | None = None
    pruned: int = 0


def record_snapshot(
    stats: ProjectStatistics,
    path: Path,
    config: TrendConfig,
    *,
    force: bool = False,
    dry_run: bool = False,
    git_ref: str | None = None,
    clock: Clock = time.time,
) -> SnapshotOutcome:
    now = now_secs(clock)
    entry = replace(TrendEntry.from_stats(stats, now), git_ref=git_ref)
    history = load_history(path)
    if not force and not history.should_add(config, now):
        return SnapshotOutcome(entry, False, "min_interval_secs has not elapsed")
    history.entries.append(entry)
    pruned = history.apply_retention(config, now)
    if dry_run:
        return SnapshotOutcome(entry, False, "dry run", pruned)
    if save_history(history, path) is WriteOutcome.SKIPPED:
        return SnapshotOutcome(entry, False, "history file is locked", pruned)
    return SnapshotOutcome(entry, True, None, pruned)
