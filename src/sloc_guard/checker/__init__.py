from __future__ import annotations

from sloc_guard.checker.content import ContentEvaluator, ContentResolution, MatchStatus
from sloc_guard.checker.result import (
    CheckResult,
    Failed,
    Grandfathered,
    Passed,
    Status,
    ViolationKind,
    Warned,
)
from sloc_guard.checker.structure import DirStats, StructureEvaluator, StructureViolation

__all__ = [
    "CheckResult",
    "ContentEvaluator",
    "ContentResolution",
    "DirStats",
    "Failed",
    "Grandfathered",
    "MatchStatus",
    "Passed",
    "Status",
    "StructureEvaluator",
    "StructureViolation",
    "ViolationKind",
    "Warned",
]
