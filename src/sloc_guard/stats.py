"""Project statistics for the ``stats`` command and trend snapshots."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable

from sloc_guard.counter import LineStats
from sloc_guard.json_types import JSONObject

DEFAULT_TOP_COUNT = 20


class GroupBy(str, Enum):
    LANG = "lang"
    DIR = "dir"

    @classmethod
    def parse(cls, value: str | None) -> "GroupBy | None":
        if value is None:
            return None
        if value in ("lang", "language"):
            return cls.LANG
        if value in ("dir", "directory"):
            return cls.DIR
        raise ValueError(f"unknown breakdown '{value}'")


@dataclass(frozen=True)
class FileStat:
    path: str
    language: str
    stats: LineStats

    def to_payload(self) -> JSONObject:
        return {"path": self.path, "language": self.language, **self.stats.to_payload()}


@dataclass(frozen=True)
class BreakdownRow:
    key: str
    files: int
    stats: LineStats

    def to_payload(self) -> JSONObject:
        return {"key": self.key, "files": self.files, **self.stats.to_payload()}


@dataclass
class ProjectStatistics:
    files: list[FileStat] = field(default_factory=list)

    @classmethod
    def from_files(cls, files: Iterable[FileStat]) -> "ProjectStatistics":
        return cls(sorted(files, key=lambda f: f.path))

    @property
    def totals(self) -> LineStats:
        total = LineStats()
        for item in self.files:
            total = total + item.stats
        return total

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def average_code(self) -> float:
        if not self.files:
            return 0.0
        return self.totals.code / len(self.files)

    def top(self, count: int) -> list[FileStat]:
        return sorted(self.files, key=lambda f: (-f.stats.code, f.path))[:count]

    def breakdown(self, group_by: GroupBy) -> list[BreakdownRow]:
        groups: dict[str, list[FileStat]] = defaultdict(list)
        for item in self.files:
            if group_by is GroupBy.LANG:
                key = item.language
            else:
                parent = PurePosixPath(item.path).parent.as_posix()
                key = parent if parent else "."
            groups[key].append(item)
        rows = []
        for key, members in groups.items():
            total = LineStats()
            for member in members:
                total = total + member.stats
            rows.append(BreakdownRow(key, len(members), total))
        return sorted(rows, key=lambda r: (-r.stats.code, r.key))

    def summary_payload(self) -> JSONObject:
        totals = self.totals
        return {
            "total_files": self.total_files,
            "total_lines": totals.total,
            "code": totals.code,
            "comment": totals.comment,
            "blank": totals.blank,
            "ignored": totals.ignored,
            "average_code": round(self.average_code, 2),
        }
