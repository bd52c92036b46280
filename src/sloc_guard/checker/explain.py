"""Rule trace for the ``explain`` command."""

from __future__ import annotations

from dataclasses import dataclass

from sloc_guard.checker.content import ContentEvaluator, ContentResolution, RuleCandidate, verdict
from sloc_guard.checker.structure import StructureEvaluator, StructureResolution
from sloc_guard.counter import LineStats
from sloc_guard.json_types import JSONObject


@dataclass(frozen=True)
class ContentExplanation:
    path: str
    resolution: ContentResolution
    stats: LineStats | None = None

    def to_payload(self) -> JSONObject:
        r = self.resolution
        payload: JSONObject = {
            "kind": "content",
            "path": self.path,
            "matched": {
                "kind": r.matched.kind.value,
                "index": r.matched.index,
                "pattern": r.matched.pattern,
                "reason": r.matched.reason,
            },
            "limit": r.limit,
            "warn_at": r.warn_at,
            "warn_source": {
                "origin": r.warn_source.origin,
                "mode": r.warn_source.mode,
                "value": r.warn_source.value,
            },
            "skip_comments": r.skip_comments,
            "skip_blank": r.skip_blank,
            "candidates": [_candidate_payload(c) for c in r.candidates],
        }
        if self.stats is not None:
            result = verdict(self.path, self.stats, r)
            payload["stats"] = self.stats.to_payload()
            payload["effective"] = result.stats.code
            payload["status"] = result.status.value
        return payload


@dataclass(frozen=True)
class StructureExplanation:
    path: str
    resolution: StructureResolution

    def to_payload(self) -> JSONObject:
        eff = self.resolution.effective
        return {
            "kind": "structure",
            "path": self.path,
            "source": eff.source,
            "max_files": eff.max_files,
            "max_subdirs": eff.max_subdirs,
            "max_depth": eff.max_depth,
            "warn_files_at": eff.files_warn_limit(),
            "warn_dirs_at": eff.dirs_warn_limit(),
            "warn_depth_at": eff.depth_warn_limit(),
            "relative_depth": eff.relative_depth,
            "reason": eff.reason,
            "candidates": [_candidate_payload(c) for c in self.resolution.candidates],
        }


Explanation = ContentExplanation | StructureExplanation


def _candidate_payload(candidate: RuleCandidate) -> JSONObject:
    return {
        "source": candidate.source,
        "pattern": candidate.pattern,
        "limit": candidate.limit,
        "status": candidate.status.value,
        "reason": candidate.reason,
    }


def explain_content(
    evaluator: ContentEvaluator, path: str, stats: LineStats | None = None
) -> ContentExplanation:
    return ContentExplanation(path=path, resolution=evaluator.resolve(path), stats=stats)


def explain_structure(evaluator: StructureEvaluator, path: str) -> StructureExplanation:
    resolution = evaluator.resolve(path)
    return StructureExplanation(path=resolution.path, resolution=resolution)


def _limit_text(value: int | None) -> str:
    if value is None or value == -1:
        return "unlimited"
    return str(value)


def render_text(explanation: Explanation) -> str:
    payload = explanation.to_payload()
    lines = [f"Path: {payload['path']}"]
    if isinstance(explanation, ContentExplanation):
        r = explanation.resolution
        lines.append(f"Matched: {r.matched.kind.value}" + (
            f" {r.matched.pattern}" if r.matched.pattern else ""
        ))
        lines.append(f"Limit: {r.limit}")
        lines.append(
            f"Warn at: {r.warn_at} ({r.warn_source.origin}, {r.warn_source.mode} "
            f"{r.warn_source.value})"
        )
        lines.append(f"Skip comments: {r.skip_comments}  Skip blank: {r.skip_blank}")
        if r.override_reason:
            lines.append(f"Reason: {r.override_reason}")
        if "status" in payload:
            lines.append(f"Effective lines: {payload['effective']} ({payload['status']})")
    else:
        eff = explanation.resolution.effective
        lines.append(f"Source: {eff.source}")
        lines.append(
            f"Max files: {_limit_text(eff.max_files)}  Max subdirs: "
            f"{_limit_text(eff.max_subdirs)}  Max depth: {_limit_text(eff.max_depth)}"
        )
        if eff.reason:
            lines.append(f"Reason: {eff.reason}")
    lines.append("Candidates:")
    for candidate in explanation.resolution.candidates:
        marker = {"matched": "*", "superseded": "-", "no_match": " "}[candidate.status.value]
        pattern = f" {candidate.pattern}" if candidate.pattern else ""
        limit = f" limit={_limit_text(candidate.limit)}" if candidate.limit is not None else ""
        lines.append(f"  {marker} {candidate.source}{pattern}{limit} [{candidate.status.value}]")
    return "\n".join(lines)
