"""Directory structure rule evaluation.

For each directory the effective limits come from the first matching
``[[structure.overrides]]`` entry, else the last ``[[structure.rules]]``
entry whose scope matches, else the global ``[structure]`` table. Unset
rule fields inherit the global values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
import math
import re

from sloc_guard.checker.content import MatchStatus, RuleCandidate
from sloc_guard.checker.result import CheckResult, Failed, ViolationKind, Warned
from sloc_guard.config.model import (
    DEFAULT_WARN_THRESHOLD,
    UNLIMITED,
    StructureConfig,
    StructureOverride,
    StructureRule,
)
from sloc_guard.counter import LineStats
from sloc_guard.globmatch import GlobSet, compile_glob, literal_prefix, normalize_path

ROOT_DIR = "."
STEM = "{stem}"


@dataclass
class DirStats:
    path: str
    depth: int
    files: list[str] = field(default_factory=list)
    subdirs: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def dir_count(self) -> int:
        return len(self.subdirs)


def join(dir_path: str, name: str) -> str:
    return name if dir_path in ("", ROOT_DIR) else f"{dir_path}/{name}"


def _ext(name: str) -> str:
    suffix = PurePosixPath(name).suffix
    return suffix[1:].lower() if suffix else ""


def _warn_limit(limit: int, threshold: float) -> int:
    return int(math.ceil(limit * threshold - 1e-9))


@dataclass(frozen=True)
class StructureViolation:
    path: str
    kind: ViolationKind
    actual: int
    limit: int
    is_warning: bool = False
    override_reason: str | None = None
    triggering_rule: str | None = None
    detail: str | None = None

    def to_check_result(self) -> CheckResult:
        stats = LineStats(total=self.actual, code=self.actual)
        cls = Warned if self.is_warning else Failed
        return cls(
            path=self.path,
            stats=stats,
            raw_stats=stats,
            limit=self.limit,
            override_reason=self.override_reason,
            violation_category=self.kind,
            detail=self.detail,
        )


@dataclass(frozen=True)
class EffectiveStructure:
    source: str
    max_files: int | None
    max_subdirs: int | None
    max_depth: int | None
    warn_files_at: int | None
    warn_dirs_at: int | None
    warn_files_threshold: float
    warn_dirs_threshold: float
    warn_depth_threshold: float
    relative_depth: bool
    base_depth: int
    reason: str | None
    rule: StructureRule | None = None

    def files_warn_limit(self) -> int | None:
        if self.max_files is None or self.max_files == UNLIMITED:
            return None
        if self.warn_files_at is not None:
            return self.warn_files_at
        return _warn_limit(self.max_files, self.warn_files_threshold)

    def dirs_warn_limit(self) -> int | None:
        if self.max_subdirs is None or self.max_subdirs == UNLIMITED:
            return None
        if self.warn_dirs_at is not None:
            return self.warn_dirs_at
        return _warn_limit(self.max_subdirs, self.warn_dirs_threshold)

    def depth_warn_limit(self) -> int | None:
        if self.max_depth is None or self.max_depth == UNLIMITED:
            return None
        return _warn_limit(self.max_depth, self.warn_depth_threshold)


@dataclass(frozen=True)
class StructureResolution:
    path: str
    effective: EffectiveStructure
    candidates: list[RuleCandidate]


class _Filters:
    def __init__(self, structure: StructureConfig, rule: StructureRule | None) -> None:
        allow_source = rule if rule is not None and rule.has_file_allow() else structure
        self.allow_extensions = {e.lstrip(".").lower() for e in allow_source.allow_extensions}
        self.allow_files = GlobSet(allow_source.allow_files)
        self.allow_patterns = GlobSet(allow_source.allow_patterns)
        dir_allow = rule if rule is not None and rule.allow_dirs else structure
        self.allow_dirs = GlobSet(dir_allow.allow_dirs)
        # Deny lists accumulate: global entries stay in force under a rule.
        sources = [structure] if rule is None else [structure, rule]
        self.deny_extensions = {
            e.lstrip(".").lower() for s in sources for e in s.deny_extensions
        }
        self.deny_files = GlobSet([p for s in sources for p in s.deny_files])
        self.deny_patterns = GlobSet([p for s in sources for p in s.deny_patterns])
        self.deny_dirs = GlobSet([p for s in sources for p in s.deny_dirs])
        naming = rule.file_naming_pattern if rule is not None else None
        naming = naming or structure.file_naming_pattern
        self.naming = re.compile(naming) if naming else None

    @property
    def allow_mode(self) -> bool:
        return bool(self.allow_extensions or len(self.allow_files) or len(self.allow_patterns))

    def file_allowed(self, name: str, path: str) -> bool:
        if not self.allow_mode:
            return True
        return (
            _ext(name) in self.allow_extensions
            or self.allow_files.is_match(name)
            or self.allow_patterns.is_match(path)
        )

    def file_denied(self, name: str, path: str) -> bool:
        return (
            (bool(_ext(name)) and _ext(name) in self.deny_extensions)
            or self.deny_files.is_match(name)
            or self.deny_patterns.is_match(path)
        )

    def dir_allowed(self, name: str) -> bool:
        if len(self.allow_dirs) and not self.allow_dirs.is_match(name):
            return False
        return not self.deny_dirs.is_match(name)


class StructureEvaluator:
    def __init__(
        self,
        structure: StructureConfig,
        *,
        max_files: int | None = None,
        max_subdirs: int | None = None,
    ) -> None:
        self.structure = structure
        self.global_max_files = max_files if max_files is not None else structure.max_files
        self.global_max_subdirs = (
            max_subdirs if max_subdirs is not None else structure.max_subdirs
        )
        self._scopes = GlobSet([rule.scope for rule in structure.rules])
        self._count_exclude = GlobSet(structure.count_exclude)
        self._filters_cache: dict[int | None, _Filters] = {}
        self._sibling_rules = [
            (index, rule)
            for index, rule in enumerate(structure.rules)
            if rule.require_sibling is not None
        ]

    @property
    def enabled(self) -> bool:
        s = self.structure
        return any(
            value is not None
            for value in (self.global_max_files, self.global_max_subdirs, s.max_depth)
        ) or bool(
            s.rules
            or s.overrides
            or s.has_file_allow()
            or s.has_file_deny()
            or s.allow_dirs
            or s.deny_dirs
            or s.file_naming_pattern
        )

    def _global_threshold(self, specific: float | None) -> float:
        if specific is not None:
            return specific
        if self.structure.warn_threshold is not None:
            return self.structure.warn_threshold
        return DEFAULT_WARN_THRESHOLD

    def _defaults(self) -> EffectiveStructure:
        s = self.structure
        return EffectiveStructure(
            source="structure (defaults)",
            max_files=self.global_max_files,
            max_subdirs=self.global_max_subdirs,
            max_depth=s.max_depth,
            warn_files_at=s.warn_files_at,
            warn_dirs_at=s.warn_dirs_at,
            warn_files_threshold=self._global_threshold(s.warn_files_threshold),
            warn_dirs_threshold=self._global_threshold(s.warn_dirs_threshold),
            warn_depth_threshold=self._global_threshold(None),
            relative_depth=False,
            base_depth=0,
            reason=None,
        )

    def _from_rule(self, index: int, rule: StructureRule) -> EffectiveStructure:
        s = self.structure
        base = self._defaults()

        def threshold(specific: float | None, global_specific: float | None) -> float:
            for value in (specific, rule.warn_threshold, global_specific, s.warn_threshold):
                if value is not None:
                    return value
            return DEFAULT_WARN_THRESHOLD

        prefix = literal_prefix(rule.scope)
        return EffectiveStructure(
            source=f"structure.rules[{index}]",
            max_files=rule.max_files if rule.max_files is not None else base.max_files,
            max_subdirs=rule.max_subdirs if rule.max_subdirs is not None else base.max_subdirs,
            max_depth=rule.max_depth if rule.max_depth is not None else base.max_depth,
            warn_files_at=(
                rule.warn_files_at
                if rule.warn_files_at is not None
                else (base.warn_files_at if rule.max_files is None else None)
            ),
            warn_dirs_at=(
                rule.warn_dirs_at
                if rule.warn_dirs_at is not None
                else (base.warn_dirs_at if rule.max_subdirs is None else None)
            ),
            warn_files_threshold=threshold(rule.warn_files_threshold, s.warn_files_threshold),
            warn_dirs_threshold=threshold(rule.warn_dirs_threshold, s.warn_dirs_threshold),
            warn_depth_threshold=threshold(None, None),
            relative_depth=rule.relative_depth,
            base_depth=len(prefix.split("/")) if prefix else 0,
            reason=rule.reason,
            rule=rule,
        )

    def _from_override(
        self, index: int, override: StructureOverride, under: EffectiveStructure
    ) -> EffectiveStructure:
        return EffectiveStructure(
            source=f"structure.overrides[{index}]",
            max_files=override.max_files if override.max_files is not None else under.max_files,
            max_subdirs=(
                override.max_subdirs if override.max_subdirs is not None else under.max_subdirs
            ),
            max_depth=override.max_depth if override.max_depth is not None else under.max_depth,
            warn_files_at=None if override.max_files is not None else under.warn_files_at,
            warn_dirs_at=None if override.max_subdirs is not None else under.warn_dirs_at,
            warn_files_threshold=under.warn_files_threshold,
            warn_dirs_threshold=under.warn_dirs_threshold,
            warn_depth_threshold=under.warn_depth_threshold,
            relative_depth=under.relative_depth,
            base_depth=under.base_depth,
            reason=override.reason,
            rule=under.rule,
        )

    def resolve(self, dir_path: str) -> StructureResolution:
        path = normalize_path(dir_path) or ROOT_DIR
        candidates: list[RuleCandidate] = []

        override_index: int | None = None
        for index, override in enumerate(self.structure.overrides):
            hit = normalize_path(override.path) == path
            if hit and override_index is None:
                override_index = index
                status = MatchStatus.MATCHED
            else:
                status = MatchStatus.SUPERSEDED if hit else MatchStatus.NO_MATCH
            candidates.append(
                RuleCandidate(
                    f"structure.overrides[{index}]",
                    override.path,
                    override.max_files,
                    status,
                    override.reason,
                )
            )

        matching = set(self._scopes.matching(path))
        winner = max(matching) if matching else None
        for index in reversed(range(len(self.structure.rules))):
            rule = self.structure.rules[index]
            if index not in matching:
                status = MatchStatus.NO_MATCH
            elif index == winner and override_index is None:
                status = MatchStatus.MATCHED
            else:
                status = MatchStatus.SUPERSEDED
            candidates.append(
                RuleCandidate(
                    f"structure.rules[{index}]", rule.scope, rule.max_files, status, rule.reason
                )
            )

        effective = (
            self._from_rule(winner, self.structure.rules[winner])
            if winner is not None
            else self._defaults()
        )
        default_status = (
            MatchStatus.MATCHED
            if winner is None and override_index is None
            else MatchStatus.SUPERSEDED
        )
        candidates.append(
            RuleCandidate("structure (defaults)", None, self.global_max_files, default_status)
        )
        if override_index is not None:
            effective = self._from_override(
                override_index, self.structure.overrides[override_index], effective
            )
        return StructureResolution(path=path, effective=effective, candidates=candidates)

    def _filters(self, effective: EffectiveStructure) -> _Filters:
        key = id(effective.rule) if effective.rule is not None else None
        filters = self._filters_cache.get(key)
        if filters is None:
            filters = _Filters(self.structure, effective.rule)
            self._filters_cache[key] = filters
        return filters

    def counted_files(self, stats: DirStats) -> list[str]:
        return [name for name in stats.files if not self._count_exclude.is_match(name)]

    def check_dir(self, stats: DirStats) -> list[StructureViolation]:
        resolution = self.resolve(stats.path)
        eff = resolution.effective
        path = resolution.path
        violations: list[StructureViolation] = []

        def limit_check(kind: ViolationKind, count: int, limit: int | None, warn: int | None) -> None:
            if limit is None or limit == UNLIMITED:
                return
            if count > limit:
                violations.append(
                    StructureViolation(path, kind, count, limit, False, eff.reason, eff.source)
                )
            elif warn is not None and count > warn:
                violations.append(
                    StructureViolation(path, kind, count, limit, True, eff.reason, eff.source)
                )

        limit_check(
            ViolationKind.FILE_COUNT,
            len(self.counted_files(stats)),
            eff.max_files,
            eff.files_warn_limit(),
        )
        limit_check(ViolationKind.DIR_COUNT, stats.dir_count, eff.max_subdirs, eff.dirs_warn_limit())

        depth = stats.depth - eff.base_depth if eff.relative_depth else stats.depth
        limit_check(ViolationKind.MAX_DEPTH, max(depth, 0), eff.max_depth, eff.depth_warn_limit())

        filters = self._filters(eff)
        for name in stats.files:
            file_path = join(path, name)
            if not filters.file_allowed(name, file_path) or filters.file_denied(name, file_path):
                violations.append(
                    StructureViolation(
                        file_path, ViolationKind.DISALLOWED_FILE, 1, 0,
                        False, eff.reason, eff.source,
                    )
                )
            elif filters.naming is not None and filters.naming.search(name) is None:
                violations.append(
                    StructureViolation(
                        file_path, ViolationKind.NAMING_PATTERN, 1, 0,
                        False, eff.reason, eff.source,
                        detail=f"expected name matching {filters.naming.pattern}",
                    )
                )
        for name in stats.subdirs:
            if not filters.dir_allowed(name):
                violations.append(
                    StructureViolation(
                        join(path, name), ViolationKind.DISALLOWED_DIR, 1, 0,
                        False, eff.reason, eff.source,
                    )
                )

        violations.extend(self.check_siblings(path, stats.files))
        return violations

    def check_siblings(self, dir_path: str, files: list[str]) -> list[StructureViolation]:
        violations: list[StructureViolation] = []
        present = set(files)
        for index, rule in self._sibling_rules:
            if not compile_glob(rule.scope).matches(dir_path):
                continue
            source = f"structure.rules[{index}]"
            required = rule.require_sibling
            if isinstance(required, str):
                matcher = compile_glob(rule.file_pattern or "*")
                for name in sorted(files):
                    if not matcher.matches(name):
                        continue
                    sibling = required.replace(STEM, PurePosixPath(name).stem)
                    if sibling == name or sibling in present:
                        continue
                    violations.append(
                        StructureViolation(
                            join(dir_path, name), ViolationKind.MISSING_SIBLING, 0, 1,
                            False, rule.reason, source, detail=f"missing sibling {sibling}",
                        )
                    )
            elif required:
                violations.extend(
                    _check_group(dir_path, files, present, list(required), rule.reason, source)
                )
        return violations

    def check(self, dirs: list[DirStats]) -> list[StructureViolation]:
        violations: list[StructureViolation] = []
        for stats in dirs:
            violations.extend(self.check_dir(stats))
        return sorted(violations, key=lambda v: (v.path, v.kind.value))


def _template_regex(template: str) -> re.Pattern[str]:
    head, _, tail = template.partition(STEM)
    return re.compile(re.escape(head) + "(?P<stem>.+)" + re.escape(tail))


def _check_group(
    dir_path: str,
    files: list[str],
    present: set[str],
    templates: list[str],
    reason: str | None,
    source: str,
) -> list[StructureViolation]:
    """Group siblings: if any member exists all must.

    Each template is tried as the anchor; the stem leaving the fewest missing
    members wins and the first one wins a tie.
    """
    regexes = [_template_regex(t) for t in templates]
    seen: set[str] = set()
    violations: list[StructureViolation] = []
    for name in sorted(files):
        best: tuple[str, list[str]] | None = None
        for regex in regexes:
            match = regex.fullmatch(name)
            if match is None:
                continue
            stem = match.group("stem")
            missing = [
                t.replace(STEM, stem) for t in templates if t.replace(STEM, stem) not in present
            ]
            if best is None or len(missing) < len(best[1]):
                best = (stem, missing)
        if best is None or best[0] in seen:
            continue
        seen.add(best[0])
        stem, missing = best
        if missing:
            violations.append(
                StructureViolation(
                    join(dir_path, name),
                    ViolationKind.GROUP_INCOMPLETE,
                    len(templates) - len(missing),
                    len(templates),
                    False,
                    reason,
                    source,
                    detail=f"missing {', '.join(missing)}",
                )
            )
    return violations
