"""Semantic validation of a merged config.

Runs once after merge and type checking. Every failure is a
``SemanticError`` naming the dotted field path, except glob compilation
failures which surface as ``InvalidPatternError``.
"""

from __future__ import annotations

from datetime import timedelta
import re

from sloc_guard.config.model import Config, StructureRule, UNLIMITED
from sloc_guard.errors import InvalidPatternError, SemanticError
from sloc_guard.globmatch import compile_glob

STATS_REPORT_SECTIONS = ("summary", "files", "breakdown", "trend")
BREAKDOWN_KEYS = ("lang", "language", "dir", "directory")
STEM_PLACEHOLDER = "{stem}"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw])\s*$")
_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def parse_duration(text: str) -> timedelta:
    """Parse ``7d`` / ``2w`` / ``12h`` style durations; raise ``ValueError`` otherwise."""
    match = _DURATION_RE.match(text)
    if match is None:
        raise ValueError(f"invalid duration: {text!r}")
    return int(match.group(1)) * _DURATION_UNITS[match.group(2)]


class _Validator:
    def __init__(self, origin: str | None) -> None:
        self.origin = origin

    def fail(self, field: str, message: str, suggestion: str | None = None) -> None:
        raise SemanticError(
            field=field, message=message, suggestion=suggestion, origin=self.origin
        )

    def threshold(self, field: str, value: float | None) -> None:
        if value is not None and not 0.0 <= value <= 1.0:
            self.fail(
                field,
                f"must be between 0.0 and 1.0, got {value}",
                "Use a fraction such as 0.8 for 80%",
            )

    def warn_at(self, field: str, warn_at: int | None, max_lines: int) -> None:
        if warn_at is None:
            return
        if warn_at < 0:
            self.fail(field, f"warn_at must be non-negative, got {warn_at}")
        if warn_at >= max_lines:
            self.fail(
                field,
                f"warn_at ({warn_at}) must be less than max_lines ({max_lines})",
                "Lower warn_at or raise max_lines",
            )

    def non_negative(self, field: str, value: int | None) -> None:
        if value is not None and value < 0:
            self.fail(field, f"must be non-negative, got {value}")

    def limit(self, field: str, value: int | None) -> None:
        if value is not None and value < UNLIMITED:
            self.fail(
                field,
                f"must be -1 (unlimited) or greater, got {value}",
                "Use -1 to disable the check, 0 to prohibit entries",
            )

    def structure_warn_at(self, field: str, warn: int | None, limit: int | None) -> None:
        if warn is None:
            return
        if warn < 0:
            self.fail(field, f"must be non-negative, got {warn}")
        if limit is not None and limit >= 0 and warn >= limit:
            self.fail(field, f"({warn}) must be less than the limit ({limit})")

    def globs(self, field: str, patterns: list[str]) -> None:
        for pattern in patterns:
            try:
                compile_glob(pattern)
            except InvalidPatternError as exc:
                raise InvalidPatternError(
                    pattern=pattern, reason=f"{exc.reason} (in {field})"
                ) from exc

    def regex(self, field: str, pattern: str | None) -> None:
        if pattern is None:
            return
        try:
            re.compile(pattern)
        except re.error as exc:
            self.fail(field, f"invalid regular expression: {exc}")


def _validate_structure_filters(v: _Validator, prefix: str, rule) -> None:
    if rule.has_file_allow() and rule.has_file_deny():
        v.fail(
            prefix,
            "cannot mix allow_* and deny_* file filters in one rule",
            "Use either an allowlist or a denylist for files",
        )
    if rule.allow_dirs and rule.deny_dirs:
        v.fail(
            prefix,
            "cannot set both allow_dirs and deny_dirs in one rule",
            "Use either an allowlist or a denylist for directories",
        )
    v.globs(f"{prefix}.allow_patterns", rule.allow_patterns)
    v.globs(f"{prefix}.deny_patterns", rule.deny_patterns)
    v.globs(f"{prefix}.allow_files", rule.allow_files)
    v.globs(f"{prefix}.deny_files", rule.deny_files)
    v.globs(f"{prefix}.allow_dirs", rule.allow_dirs)
    v.globs(f"{prefix}.deny_dirs", rule.deny_dirs)
    v.regex(f"{prefix}.file_naming_pattern", rule.file_naming_pattern)


def _validate_siblings(v: _Validator, prefix: str, rule: StructureRule) -> None:
    required = rule.require_sibling
    if required is None:
        if rule.file_pattern is not None:
            v.fail(f"{prefix}.file_pattern", "requires 'require_sibling' to be set")
        return
    if isinstance(required, str):
        if rule.file_pattern is None:
            v.fail(
                f"{prefix}.require_sibling",
                "a single sibling template needs 'file_pattern'",
                "Set file_pattern, or pass a list to require_sibling for group mode",
            )
        v.globs(f"{prefix}.file_pattern", [rule.file_pattern or "*"])
        templates = [required]
    else:
        if len(required) < 2:
            v.fail(f"{prefix}.require_sibling", "a sibling group needs at least 2 patterns")
        templates = list(required)
    for template in templates:
        if STEM_PLACEHOLDER not in template:
            v.fail(
                f"{prefix}.require_sibling",
                f"pattern '{template}' must contain {STEM_PLACEHOLDER}",
            )


def validate_config(config: Config, *, origin: str | None = None) -> None:
    v = _Validator(origin)

    v.globs("scanner.exclude", config.scanner.exclude)

    content = config.content
    v.non_negative("content.max_lines", content.max_lines)
    v.threshold("content.warn_threshold", content.warn_threshold)
    v.warn_at("content.warn_at", content.warn_at, content.max_lines)
    v.globs("content.exclude", content.exclude)
    for ext, lang in content.languages.items():
        prefix = f"content.languages.{ext}"
        v.non_negative(f"{prefix}.max_lines", lang.max_lines)
        v.threshold(f"{prefix}.warn_threshold", lang.warn_threshold)
        v.warn_at(
            f"{prefix}.warn_at",
            lang.warn_at,
            lang.max_lines if lang.max_lines is not None else content.max_lines,
        )
    for index, rule in enumerate(content.rules):
        prefix = f"content.rules[{index}]"
        v.globs(f"{prefix}.pattern", [rule.pattern])
        v.non_negative(f"{prefix}.max_lines", rule.max_lines)
        v.threshold(f"{prefix}.warn_threshold", rule.warn_threshold)
        v.warn_at(f"{prefix}.warn_at", rule.warn_at, rule.max_lines)
    for index, override in enumerate(content.overrides):
        v.non_negative(f"content.overrides[{index}].max_lines", override.max_lines)

    structure = config.structure
    for name in ("max_files", "max_subdirs", "max_depth"):
        v.limit(f"structure.{name}", getattr(structure, name))
    for name in ("warn_threshold", "warn_files_threshold", "warn_dirs_threshold"):
        v.threshold(f"structure.{name}", getattr(structure, name))
    v.structure_warn_at("structure.warn_files_at", structure.warn_files_at, structure.max_files)
    v.structure_warn_at("structure.warn_dirs_at", structure.warn_dirs_at, structure.max_subdirs)
    v.globs("structure.count_exclude", structure.count_exclude)
    _validate_structure_filters(v, "structure", structure)
    for index, rule in enumerate(structure.rules):
        prefix = f"structure.rules[{index}]"
        v.globs(f"{prefix}.scope", [rule.scope])
        for name in ("max_files", "max_subdirs", "max_depth"):
            v.limit(f"{prefix}.{name}", getattr(rule, name))
        for name in ("warn_threshold", "warn_files_threshold", "warn_dirs_threshold"):
            v.threshold(f"{prefix}.{name}", getattr(rule, name))
        v.structure_warn_at(
            f"{prefix}.warn_files_at",
            rule.warn_files_at,
            rule.max_files if rule.max_files is not None else structure.max_files,
        )
        v.structure_warn_at(
            f"{prefix}.warn_dirs_at",
            rule.warn_dirs_at,
            rule.max_subdirs if rule.max_subdirs is not None else structure.max_subdirs,
        )
        _validate_structure_filters(v, prefix, rule)
        _validate_siblings(v, prefix, rule)
    for index, override in enumerate(structure.overrides):
        prefix = f"structure.overrides[{index}]"
        limits = (override.max_files, override.max_subdirs, override.max_depth)
        if all(value is None for value in limits):
            v.fail(
                prefix,
                "must specify at least one of max_files, max_subdirs or max_depth",
            )
        for name in ("max_files", "max_subdirs", "max_depth"):
            v.limit(f"{prefix}.{name}", getattr(override, name))

    for name, language in config.languages.items():
        prefix = f"languages.{name}"
        if not language.extensions:
            v.fail(f"{prefix}.extensions", "must list at least one extension")
        for index, pair in enumerate(language.multi_line_comments):
            if len(pair) != 2 or not all(pair):
                v.fail(
                    f"{prefix}.multi_line_comments[{index}]",
                    "must be a [start, end] pair of non-empty markers",
                )

    report = config.stats.report
    for section in report.exclude:
        if section not in STATS_REPORT_SECTIONS:
            v.fail(
                "stats.report.exclude",
                f"unknown section '{section}'",
                f"Valid sections: {', '.join(STATS_REPORT_SECTIONS)}",
            )
    if report.breakdown_by is not None and report.breakdown_by not in BREAKDOWN_KEYS:
        v.fail(
            "stats.report.breakdown_by",
            f"unknown value '{report.breakdown_by}'",
            f"Valid values: {', '.join(BREAKDOWN_KEYS)}",
        )
    if report.top_count is not None and report.top_count < 1:
        v.fail("stats.report.top_count", "must be at least 1")
    if report.trend_since is not None:
        try:
            parse_duration(report.trend_since)
        except ValueError:
            v.fail(
                "stats.report.trend_since",
                f"invalid duration '{report.trend_since}'",
                "Use a number followed by s, m, h, d or w, e.g. 7d",
            )

    trend = config.trend
    v.non_negative("trend.max_entries", trend.max_entries)
    v.non_negative("trend.max_age_days", trend.max_age_days)
    v.non_negative("trend.min_interval_secs", trend.min_interval_secs)
