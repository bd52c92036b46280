"""The ``check`` pipeline.

Config is resolved before anything touches the tree. The file pass then runs
on a thread pool: each worker consults the cache, reads and classifies on a
miss, and evaluates the content rule. Structure rules run once afterwards
over the per-directory counts. The baseline, the ratchet and split
suggestions are applied last, on the sorted result list.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable
import os
import threading

from sloc_guard import console
from sloc_guard.analyzer import SplitAnalyzer
from sloc_guard.baseline import (
    Baseline,
    UpdateMode,
    apply_baseline,
    load_baseline,
    save_baseline,
    stale_entries,
    tighten,
    update_baseline,
)
from sloc_guard.cache import Cache, CacheEntry, compute_config_hash, hash_content, load_cache, save_cache
from sloc_guard.checker.content import ContentEvaluator
from sloc_guard.checker.result import (
    CheckResult,
    Failed,
    Status,
    Warned,
    result_sort_key,
)
from sloc_guard.checker.structure import DirStats, StructureEvaluator
from sloc_guard.config.expires import ExpiredRule, collect_expired_rules
from sloc_guard.config.loader import LoadedConfig
from sloc_guard.config.model import Config
from sloc_guard.counter import IgnoredFile, LineClassifier, LineStats
from sloc_guard.errors import SlocGuardError
from sloc_guard.git_diff import changed_files, head_commit
from sloc_guard.language import LanguageRegistry
from sloc_guard.scanner import ScanResult, ScannedFile, Scanner
from sloc_guard.state import baseline_path, cache_path, history_path
from sloc_guard.stats import FileStat, ProjectStatistics
from sloc_guard.trend import record_snapshot

EXIT_OK = 0
EXIT_FAILURES = 1


@dataclass(frozen=True)
class FileOutcome:
    scanned: ScannedFile
    language: str
    stats: LineStats | None
    content_hash: str | None

    @property
    def ignored(self) -> bool:
        return self.stats is None


class FileCounter:
    """Cache-aware line counting; safe to call from worker threads."""

    def __init__(self, registry: LanguageRegistry, cache: Cache | None) -> None:
        self.registry = registry
        self.cache = cache
        self._classifiers: dict[str, LineClassifier] = {}
        for language in registry.languages():
            self._classifiers[language.name] = LineClassifier(language.syntax)
        self.reads = 0
        self._reads_lock = threading.Lock()

    def count(self, scanned: ScannedFile) -> FileOutcome | None:
        language = self.registry.by_extension(scanned.extension)
        if language is None:
            console.debug(f"skipping {scanned.key}: no language for .{scanned.extension}")
            return None
        try:
            st = scanned.path.stat()
        except OSError as exc:
            console.warn(f"skipping {scanned.key}: {exc.strerror or exc}")
            return None
        mtime, size = int(st.st_mtime), st.st_size
        if self.cache is not None:
            entry = self.cache.get_if_fresh(scanned.key, mtime=mtime, size=size)
            if entry is not None:
                return FileOutcome(scanned, language.name, entry.stats, entry.content_hash)
        try:
            data = scanned.path.read_bytes()
        except OSError as exc:
            console.warn(f"skipping {scanned.key}: {exc.strerror or exc}")
            return None
        with self._reads_lock:
            self.reads += 1
        content_hash = hash_content(data)
        if self.cache is not None:
            entry = self.cache.get_by_hash(
                scanned.key, content_hash=content_hash, mtime=mtime, size=size
            )
            if entry is not None:
                return FileOutcome(scanned, language.name, entry.stats, content_hash)
        counted = self._classifiers[language.name].classify(data)
        if isinstance(counted, IgnoredFile):
            return FileOutcome(scanned, language.name, None, content_hash)
        if self.cache is not None:
            self.cache.set(scanned.key, CacheEntry(content_hash, counted, mtime, size))
        return FileOutcome(scanned, language.name, counted, content_hash)

    def count_all(
        self, files: Iterable[ScannedFile], *, workers: int | None = None
    ) -> list[FileOutcome]:
        files = list(files)
        with ThreadPoolExecutor(max_workers=workers or default_workers()) as executor:
            outcomes = list(executor.map(self.count, files))
        return [outcome for outcome in outcomes if outcome is not None]


def default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class CheckOptions:
    paths: list[Path] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    include: list[Path] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    extensions: list[str] = field(default_factory=list)
    max_lines: int | None = None
    max_files: int | None = None
    max_subdirs: int | None = None
    warn_threshold: float | None = None
    count_comments: bool = False
    count_blank: bool = False
    warn_only: bool = False
    strict: bool = False
    fail_fast: bool = False
    diff: str | None = None
    baseline: Path | None = None
    update_baseline: UpdateMode | None = None
    no_cache: bool = False
    no_gitignore: bool = False
    suggest: bool = False
    workers: int | None = None


@dataclass
class CheckSummary:
    total: int = 0
    passed: int = 0
    warnings: int = 0
    failed: int = 0
    grandfathered: int = 0

    @classmethod
    def of(cls, results: Iterable[CheckResult]) -> "CheckSummary":
        summary = cls()
        for result in results:
            summary.total += 1
            if result.status is Status.PASSED:
                summary.passed += 1
            elif result.status is Status.WARNING:
                summary.warnings += 1
            elif result.status is Status.FAILED:
                summary.failed += 1
            else:
                summary.grandfathered += 1
        return summary


@dataclass
class CheckReport:
    results: list[CheckResult]
    exit_code: int
    files_scanned: int = 0
    ignored_files: list[str] = field(default_factory=list)
    expired_rules: list[ExpiredRule] = field(default_factory=list)
    stale_baseline: list[str] = field(default_factory=list)
    file_reads: int = 0

    @property
    def summary(self) -> CheckSummary:
        return CheckSummary.of(self.results)


def compute_exit_code(
    results: Iterable[CheckResult],
    *,
    warn_only: bool,
    strict: bool,
    stale_is_failure: bool = False,
) -> int:
    if warn_only:
        return EXIT_OK
    summary = CheckSummary.of(results)
    if summary.failed or stale_is_failure or (strict and summary.warnings):
        return EXIT_FAILURES
    return EXIT_OK


def build_scanner(config: Config, options: CheckOptions, *, base: Path) -> Scanner:
    return Scanner(
        base=base,
        extensions=options.extensions or config.content.extensions,
        exclude=list(config.scanner.exclude) + list(options.exclude),
        gitignore=config.scanner.gitignore and not options.no_gitignore,
    )


def scan(config: Config, options: CheckOptions, *, base: Path) -> ScanResult:
    scanner = build_scanner(config, options, base=base)
    if options.files:
        return scanner.scan_files(options.files)
    roots = options.include or options.paths or [base]
    result = scanner.scan(roots)
    if options.diff:
        changed = changed_files(base, options.diff)
        result.files = [f for f in result.files if f.path.resolve() in changed]
        touched = {f.key.rpartition("/")[0] or "." for f in result.files}
        result.dirs = [d for d in result.dirs if d.path in touched]
    return result


def _content_evaluator(config: Config, options: CheckOptions) -> ContentEvaluator:
    return ContentEvaluator(
        config.content,
        warn_threshold=options.warn_threshold,
        max_lines=options.max_lines,
        skip_comments=False if options.count_comments else None,
        skip_blank=False if options.count_blank else None,
    )


class _FailFast(Exception):
    pass


class CheckRunner:
    def __init__(
        self,
        loaded: LoadedConfig,
        options: CheckOptions,
        *,
        base: Path,
        project_root: Path,
        today: date | None = None,
    ) -> None:
        self.config = loaded.config
        self.options = options
        self.base = base
        self.project_root = project_root
        self.today = today
        self.registry = LanguageRegistry.with_custom(self.config.languages)
        self.content = _content_evaluator(self.config, options)
        self.structure = StructureEvaluator(
            self.config.structure,
            max_files=options.max_files,
            max_subdirs=options.max_subdirs,
        )

    # -- state ---------------------------------------------------------------

    def _load_cache(self) -> Cache | None:
        if self.options.no_cache:
            return None
        return load_cache(
            cache_path(self.project_root), compute_config_hash(self.config.languages)
        )

    def _baseline_location(self) -> Path:
        return self.options.baseline or baseline_path(self.project_root)

    def _load_baseline(self) -> Baseline | None:
        required = self.options.baseline is not None and self.options.update_baseline is None
        return load_baseline(self._baseline_location(), required=required)

    # -- file pass -----------------------------------------------------------

    def _evaluate(self, outcome: FileOutcome) -> CheckResult | None:
        if outcome.stats is None:
            return None
        return self.content.check(outcome.scanned.key, outcome.stats)

    def _file_pass(
        self,
        counter: FileCounter,
        files: list[ScannedFile],
        baseline: Baseline | None,
    ) -> tuple[list[CheckResult], list[FileOutcome]]:
        results: list[CheckResult] = []
        outcomes: list[FileOutcome] = []
        pending: set[Future[FileOutcome | None]] = set()
        with ThreadPoolExecutor(max_workers=self.options.workers or default_workers()) as executor:
            for scanned in files:
                pending.add(executor.submit(counter.count, scanned))
            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        outcome = future.result()
                        if outcome is None:
                            continue
                        outcomes.append(outcome)
                        result = self._evaluate(outcome)
                        if result is None:
                            continue
                        results.append(result)
                        if self.options.fail_fast and self._still_fails(result, outcome, baseline):
                            raise _FailFast()
            except _FailFast:
                for future in pending:
                    future.cancel()
        return results, outcomes

    @staticmethod
    def _still_fails(
        result: CheckResult, outcome: FileOutcome, baseline: Baseline | None
    ) -> bool:
        if not isinstance(result, Failed):
            return False
        if baseline is None or outcome.content_hash is None:
            return True
        applied = apply_baseline([result], baseline, {result.path: outcome.content_hash})
        return isinstance(applied[0], Failed)

    # -- structure -----------------------------------------------------------

    def _structure_pass(self, dirs: list[DirStats]) -> list[CheckResult]:
        if not self.structure.enabled or not dirs:
            return []
        return [violation.to_check_result() for violation in self.structure.check(dirs)]

    # -- post-processing -----------------------------------------------------

    def _suggest(self, results: list[CheckResult], outcomes: dict[str, FileOutcome]) -> list[CheckResult]:
        analyzer = SplitAnalyzer()
        suggested: list[CheckResult] = []
        for result in results:
            outcome = outcomes.get(result.path)
            if not isinstance(result, (Warned, Failed)) or result.is_structure or outcome is None:
                suggested.append(result)
                continue
            try:
                text = outcome.scanned.path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                console.warn(f"no split suggestion for {result.path}: {exc.strerror or exc}")
                suggested.append(result)
                continue
            suggestion = analyzer.analyze(result.path, text, outcome.language, result.limit)
            suggested.append(result.with_suggestions(suggestion) if suggestion else result)
        return suggested

    def _ratchet(
        self, results: list[CheckResult], baseline: Baseline | None
    ) -> tuple[list[str], bool]:
        mode = self.config.baseline.ratchet
        if mode is None or baseline is None:
            return [], False
        if self.options.diff or self.options.files or self.options.fail_fast:
            console.debug("baseline ratchet skipped: partial scan")
            return [], False
        stale = stale_entries(results, baseline)
        if not stale:
            return [], False
        if mode == "auto":
            save_baseline(tighten(baseline, stale), self._baseline_location())
            console.warn(f"removed {len(stale)} stale baseline entries")
            return stale, False
        for path in stale:
            console.warn(f"baseline entry for {path} no longer fails; tighten the baseline")
        return stale, mode == "strict"

    def _auto_snapshot(self, outcomes: list[FileOutcome]) -> None:
        stats = ProjectStatistics.from_files(
            FileStat(o.scanned.key, o.language, o.stats) for o in outcomes if o.stats is not None
        )
        try:
            outcome = record_snapshot(
                stats,
                history_path(self.project_root),
                self.config.trend,
                git_ref=head_commit(self.base),
            )
        except SlocGuardError as exc:
            console.warn(f"auto snapshot failed: {exc.message}")
            return
        if outcome.recorded:
            console.debug("recorded trend snapshot")

    # -- entry point ---------------------------------------------------------

    def run(self) -> CheckReport:
        expired = collect_expired_rules(self.config, today=self.today)
        for rule in expired:
            console.warn(f"expired rule still applies: {rule.describe()}")

        scanned = scan(self.config, self.options, base=self.base)
        candidates = [f for f in scanned.files if not self.content.is_excluded(f.key)]
        baseline = self._load_baseline()
        cache = self._load_cache()
        counter = FileCounter(self.registry, cache)

        content_results, outcome_list = self._file_pass(counter, candidates, baseline)
        outcomes = {o.scanned.key: o for o in outcome_list}
        hashes = {
            key: o.content_hash for key, o in outcomes.items() if o.content_hash is not None
        }
        results = content_results
        if not (self.options.fail_fast and any(isinstance(r, Failed) for r in results)):
            results = results + self._structure_pass(scanned.dirs)
        results.sort(key=result_sort_key)

        if self.options.update_baseline is not None:
            baseline = update_baseline(results, self.options.update_baseline, hashes, baseline)
            save_baseline(baseline, self._baseline_location())
            console.debug(f"baseline updated with {len(baseline)} entries")
        if baseline is not None:
            results = apply_baseline(results, baseline, hashes)

        stale, stale_fails = self._ratchet(results, baseline)
        if self.options.suggest:
            results = self._suggest(results, outcomes)

        if cache is not None and cache.dirty:
            save_cache(cache, cache_path(self.project_root))
        if self.config.trend.auto_snapshot_on_check:
            self._auto_snapshot(outcome_list)

        exit_code = compute_exit_code(
            results,
            warn_only=self.options.warn_only,
            strict=self.options.strict or self.config.content.strict,
            stale_is_failure=stale_fails,
        )
        return CheckReport(
            results=results,
            exit_code=exit_code,
            files_scanned=len(outcome_list),
            ignored_files=sorted(key for key, o in outcomes.items() if o.ignored),
            expired_rules=expired,
            stale_baseline=stale,
            file_reads=counter.reads,
        )


def run_check(
    loaded: LoadedConfig,
    options: CheckOptions,
    *,
    base: Path,
    project_root: Path,
    today: date | None = None,
) -> CheckReport:
    return CheckRunner(
        loaded, options, base=base, project_root=project_root, today=today
    ).run()


__all__ = [
    "CheckOptions",
    "CheckReport",
    "CheckRunner",
    "CheckSummary",
    "FileCounter",
    "FileOutcome",
    "compute_exit_code",
    "run_check",
    "scan",
]
