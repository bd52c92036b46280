"""Content (line budget) rule evaluation.

Resolution is a pure function of the path and the compiled rule list:
explicit overrides first, then ``[[content.rules]]`` with the last match
winning (per-language rules are placed before user rules), then the global
``[content]`` defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
import math

from sloc_guard.checker.result import CheckResult, Failed, Passed, Warned
from sloc_guard.config.model import DEFAULT_WARN_THRESHOLD, ContentConfig, ContentRule
from sloc_guard.counter import LineStats
from sloc_guard.globmatch import GlobSet, compile_glob, normalize_path

_EPSILON = 1e-9


class MatchStatus(str, Enum):
    MATCHED = "matched"
    SUPERSEDED = "superseded"
    NO_MATCH = "no_match"


class MatchKind(str, Enum):
    EXCLUDED = "excluded"
    OVERRIDE = "override"
    RULE = "rule"
    DEFAULT = "default"


@dataclass(frozen=True)
class MatchedRule:
    kind: MatchKind
    index: int | None = None
    pattern: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class RuleCandidate:
    source: str
    pattern: str | None
    limit: int | None
    status: MatchStatus
    reason: str | None = None


@dataclass(frozen=True)
class WarnSource:
    origin: str
    mode: str
    value: float | int


@dataclass(frozen=True)
class ContentResolution:
    limit: int
    warn_at: int
    warn_source: WarnSource
    skip_comments: bool
    skip_blank: bool
    matched: MatchedRule
    override_reason: str | None = None
    candidates: list[RuleCandidate] = field(default_factory=list)

    @property
    def excluded(self) -> bool:
        return self.matched.kind is MatchKind.EXCLUDED


@dataclass(frozen=True)
class _CompiledRule:
    source: str
    rule: ContentRule


def threshold_floor(limit: int, threshold: float) -> int:
    return int(math.floor(limit * threshold + _EPSILON))


def language_rules(content: ContentConfig) -> list[ContentRule]:
    """``content.languages.<ext>`` expanded into ``**/*.<ext>`` rules."""
    expanded: list[ContentRule] = []
    for ext, lang in content.languages.items():
        expanded.append(
            ContentRule(
                pattern=f"**/*.{ext.lstrip('.')}",
                max_lines=lang.max_lines if lang.max_lines is not None else content.max_lines,
                warn_at=lang.warn_at,
                warn_threshold=lang.warn_threshold,
                skip_comments=lang.skip_comments,
                skip_blank=lang.skip_blank,
            )
        )
    return expanded


def override_matches(override_path: str, path: str) -> bool:
    target = normalize_path(override_path)
    if path == target or path.endswith("/" + target):
        return True
    return compile_glob(target).matches(path)


class ContentEvaluator:
    """Immutable after construction; safe to share across worker threads."""

    def __init__(
        self,
        content: ContentConfig,
        *,
        warn_threshold: float | None = None,
        max_lines: int | None = None,
        skip_comments: bool | None = None,
        skip_blank: bool | None = None,
    ) -> None:
        self.content = content
        self.default_limit = max_lines if max_lines is not None else content.max_lines
        self.default_threshold = (
            warn_threshold if warn_threshold is not None else content.warn_threshold
        )
        self.skip_comments = (
            skip_comments if skip_comments is not None else content.skip_comments
        )
        self.skip_blank = skip_blank if skip_blank is not None else content.skip_blank
        self._excludes = GlobSet(content.exclude)
        lang = [
            _CompiledRule(f"content.languages.{ext}", rule)
            for ext, rule in zip(content.languages, language_rules(content))
        ]
        user = [
            _CompiledRule(f"content.rules[{index}]", rule)
            for index, rule in enumerate(content.rules)
        ]
        self._rules = lang + user
        self._rule_globs = GlobSet([compiled.rule.pattern for compiled in self._rules])

    def is_excluded(self, path: str | PurePath) -> bool:
        return self._excludes.is_match(path)

    def _warn_at(self, limit: int, rule: ContentRule | None) -> tuple[int, WarnSource]:
        if rule is not None:
            if rule.warn_at is not None:
                return rule.warn_at, WarnSource("rule", "absolute", rule.warn_at)
            if rule.warn_threshold is not None:
                return (
                    threshold_floor(limit, rule.warn_threshold),
                    WarnSource("rule", "percentage", rule.warn_threshold),
                )
        global_warn_at = self.content.warn_at
        if global_warn_at is not None and global_warn_at < limit:
            return global_warn_at, WarnSource("default", "absolute", global_warn_at)
        threshold = self.default_threshold
        if threshold is None:
            threshold = DEFAULT_WARN_THRESHOLD
        return threshold_floor(limit, threshold), WarnSource("default", "percentage", threshold)

    def resolve(self, path: str | PurePath) -> ContentResolution:
        normalized = normalize_path(path)
        candidates: list[RuleCandidate] = []

        if self._excludes.is_match(normalized):
            excluded_by = self.content.exclude[self._excludes.matching(normalized)[0]]
            candidates.append(
                RuleCandidate("content.exclude", excluded_by, None, MatchStatus.MATCHED)
            )
            warn_at, warn_source = self._warn_at(self.default_limit, None)
            return ContentResolution(
                limit=self.default_limit,
                warn_at=warn_at,
                warn_source=warn_source,
                skip_comments=self.skip_comments,
                skip_blank=self.skip_blank,
                matched=MatchedRule(MatchKind.EXCLUDED, pattern=excluded_by),
                candidates=candidates,
            )

        override_index: int | None = None
        for index, override in enumerate(self.content.overrides):
            hit = override_matches(override.path, normalized)
            status = MatchStatus.NO_MATCH
            if hit and override_index is None:
                override_index = index
                status = MatchStatus.MATCHED
            elif hit:
                status = MatchStatus.SUPERSEDED
            candidates.append(
                RuleCandidate(
                    f"content.overrides[{index}]",
                    override.path,
                    override.max_lines,
                    status,
                    override.reason,
                )
            )

        matching = set(self._rule_globs.matching(normalized))
        winner = max(matching) if matching and override_index is None else None
        for index in reversed(range(len(self._rules))):
            compiled = self._rules[index]
            if index not in matching:
                status = MatchStatus.NO_MATCH
            elif index == winner:
                status = MatchStatus.MATCHED
            else:
                status = MatchStatus.SUPERSEDED
            candidates.append(
                RuleCandidate(
                    compiled.source,
                    compiled.rule.pattern,
                    compiled.rule.max_lines,
                    status,
                    compiled.rule.reason,
                )
            )

        default_status = (
            MatchStatus.MATCHED
            if override_index is None and winner is None
            else MatchStatus.SUPERSEDED
        )
        candidates.append(
            RuleCandidate("content (defaults)", None, self.default_limit, default_status)
        )

        if override_index is not None:
            override = self.content.overrides[override_index]
            warn_at, warn_source = self._warn_at(override.max_lines, None)
            return ContentResolution(
                limit=override.max_lines,
                warn_at=warn_at,
                warn_source=warn_source,
                skip_comments=self.skip_comments,
                skip_blank=self.skip_blank,
                matched=MatchedRule(
                    MatchKind.OVERRIDE, override_index, override.path, override.reason
                ),
                override_reason=override.reason,
                candidates=candidates,
            )
        if winner is not None:
            rule = self._rules[winner].rule
            warn_at, warn_source = self._warn_at(rule.max_lines, rule)
            return ContentResolution(
                limit=rule.max_lines,
                warn_at=warn_at,
                warn_source=warn_source,
                skip_comments=(
                    rule.skip_comments if rule.skip_comments is not None else self.skip_comments
                ),
                skip_blank=rule.skip_blank if rule.skip_blank is not None else self.skip_blank,
                matched=MatchedRule(MatchKind.RULE, winner, rule.pattern, rule.reason),
                override_reason=rule.reason,
                candidates=candidates,
            )
        warn_at, warn_source = self._warn_at(self.default_limit, None)
        return ContentResolution(
            limit=self.default_limit,
            warn_at=warn_at,
            warn_source=warn_source,
            skip_comments=self.skip_comments,
            skip_blank=self.skip_blank,
            matched=MatchedRule(MatchKind.DEFAULT),
            candidates=candidates,
        )

    def check(self, path: str | PurePath, stats: LineStats) -> CheckResult:
        resolution = self.resolve(path)
        return verdict(normalize_path(path), stats, resolution)


def verdict(path: str, stats: LineStats, resolution: ContentResolution) -> CheckResult:
    effective_stats = stats.adjusted(
        skip_comments=resolution.skip_comments, skip_blank=resolution.skip_blank
    )
    common = dict(
        path=path,
        stats=effective_stats,
        raw_stats=stats,
        limit=resolution.limit,
        override_reason=resolution.override_reason,
    )
    if resolution.excluded:
        return Passed(**common)
    effective = effective_stats.code
    if effective > resolution.limit:
        return Failed(**common)
    if effective > resolution.warn_at:
        return Warned(**common)
    return Passed(**common)
