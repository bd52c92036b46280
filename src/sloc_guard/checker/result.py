"""Per-path verdicts.

A verdict is exactly one of ``Passed``, ``Warned``, ``Failed`` or
``Grandfathered``. Split suggestions can only be attached to ``Warned`` and
``Failed``; the other variants have no field for them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from sloc_guard.counter import LineStats

if TYPE_CHECKING:
    from sloc_guard.analyzer import SplitSuggestion


class Status(str, Enum):
    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"
    GRANDFATHERED = "grandfathered"


class ViolationKind(str, Enum):
    FILE_COUNT = "file_count"
    DIR_COUNT = "dir_count"
    MAX_DEPTH = "max_depth"
    MISSING_SIBLING = "missing_sibling"
    GROUP_INCOMPLETE = "group_incomplete"
    DISALLOWED_FILE = "disallowed_file"
    DISALLOWED_DIR = "disallowed_dir"
    NAMING_PATTERN = "naming_pattern"


@dataclass(frozen=True)
class _Verdict:
    status: ClassVar[Status]

    path: str
    stats: LineStats
    raw_stats: LineStats
    limit: int
    override_reason: str | None = None
    violation_category: ViolationKind | None = None
    detail: str | None = None

    @property
    def actual(self) -> int:
        return self.stats.code

    @property
    def is_structure(self) -> bool:
        return self.violation_category is not None


@dataclass(frozen=True)
class Passed(_Verdict):
    status: ClassVar[Status] = Status.PASSED


@dataclass(frozen=True)
class Warned(_Verdict):
    status: ClassVar[Status] = Status.WARNING
    suggestions: "SplitSuggestion | None" = None

    def with_suggestions(self, suggestions: "SplitSuggestion | None") -> "Warned":
        return replace(self, suggestions=suggestions)


@dataclass(frozen=True)
class Failed(_Verdict):
    status: ClassVar[Status] = Status.FAILED
    suggestions: "SplitSuggestion | None" = None

    def with_suggestions(self, suggestions: "SplitSuggestion | None") -> "Failed":
        return replace(self, suggestions=suggestions)

    def grandfather(self) -> "Grandfathered":
        return Grandfathered(
            path=self.path,
            stats=self.stats,
            raw_stats=self.raw_stats,
            limit=self.limit,
            override_reason=self.override_reason,
            violation_category=self.violation_category,
            detail=self.detail,
        )


@dataclass(frozen=True)
class Grandfathered(_Verdict):
    status: ClassVar[Status] = Status.GRANDFATHERED


CheckResult = Passed | Warned | Failed | Grandfathered


def result_sort_key(result: CheckResult) -> tuple[str, str]:
    kind = result.violation_category.value if result.violation_category else ""
    return (result.path, kind)
