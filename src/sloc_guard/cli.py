from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, NoReturn, Optional
import json
import os
import sys

import typer

from sloc_guard import __version__, console
from sloc_guard.baseline import UpdateMode
from sloc_guard.cache import compute_config_hash, load_cache, save_cache
from sloc_guard.check import CheckOptions, FileCounter, build_scanner, run_check
from sloc_guard.checker.content import ContentEvaluator
from sloc_guard.checker.explain import explain_content, explain_structure, render_text
from sloc_guard.checker.structure import StructureEvaluator
from sloc_guard.config.loader import ConfigLoader, LoadedConfig
from sloc_guard.config.presets import PRESET_PREFIX, available_presets, preset_text
from sloc_guard.config.remote import FetchPolicy
from sloc_guard.config.toml_io import parse_toml
from sloc_guard.config.validation import parse_duration
from sloc_guard.counter import IgnoredFile, LineClassifier, LineStats
from sloc_guard.detect import detect_projects, render_detected_config
from sloc_guard.errors import ConfigError, FileAccessError, SlocGuardError
from sloc_guard.git_diff import head_commit
from sloc_guard.language import LanguageRegistry
from sloc_guard.output import OutputFormat, render_check, render_json
from sloc_guard.output import config_report
from sloc_guard.output.stats_report import StatsReport, render_json as render_stats_json
from sloc_guard.output.stats_report import render_markdown as render_stats_markdown
from sloc_guard.output.stats_report import render_text as render_stats_text
from sloc_guard.scanner import relative_key
from sloc_guard.state import CONFIG_FILE_NAME, cache_path, discover_project_root, history_path
from sloc_guard.stats import DEFAULT_TOP_COUNT, FileStat, GroupBy, ProjectStatistics
from sloc_guard.trend import TrendEntry, load_history, now_secs, record_snapshot

app = typer.Typer(add_completion=False, help="Enforce line-count and directory-structure budgets.")
config_app = typer.Typer(add_completion=False, help="Configuration file utilities.")
app.add_typer(config_app, name="config")


class ColorChoice(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class StatsFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


class ExplainFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


class ConfigFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@dataclass(frozen=True)
class GlobalOptions:
    config: Optional[Path] = None
    no_config: bool = False
    no_extends: bool = False
    extends_policy: FetchPolicy = FetchPolicy.NORMAL
    verbose: int = 0
    quiet: bool = False
    color: bool = False


_DEFAULT_CONFIG_TEMPLATE = """\
version = "2"

[scanner]
gitignore = true
exclude = []

[content]
max_lines = 500
warn_threshold = 0.8
skip_comments = true
skip_blank = true
extensions = ["rs", "go", "py", "js", "ts", "c", "cpp"]

# [[content.rules]]
# pattern = "tests/**"
# max_lines = 800
# reason = "test fixtures are long"

[structure]
# max_files = 30
# max_subdirs = 10
"""


def _color_enabled(choice: ColorChoice) -> bool:
    if choice is ColorChoice.ALWAYS:
        return True
    if choice is ColorChoice.NEVER or os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Config file to use."),
    no_config: bool = typer.Option(False, "--no-config", help="Ignore config files."),
    no_extends: bool = typer.Option(False, "--no-extends", help="Do not follow extends."),
    extends_policy: FetchPolicy = typer.Option(
        FetchPolicy.NORMAL, "--extends-policy", help="Remote config fetch policy."
    ),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True),
    quiet: bool = typer.Option(False, "-q", "--quiet"),
    color: ColorChoice = typer.Option(ColorChoice.AUTO, "--color"),
) -> None:
    enabled = _color_enabled(color)
    console.configure(verbose=verbose, color=enabled)
    ctx.obj = GlobalOptions(
        config=config,
        no_config=no_config,
        no_extends=no_extends,
        extends_policy=extends_policy,
        verbose=verbose,
        quiet=quiet,
        color=enabled,
    )


def _globals(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.obj
    if isinstance(obj, GlobalOptions):
        return obj
    return GlobalOptions()


def _fail(exc: SlocGuardError) -> NoReturn:
    lines = exc.render()
    typer.secho(lines[0], err=True, fg=typer.colors.RED if console.color_enabled() else None)
    for line in lines[1:]:
        typer.echo(line, err=True)
    raise typer.Exit(code=exc.exit_code)


def _load_config(opts: GlobalOptions, cwd: Path, project_root: Path) -> LoadedConfig:
    loader = ConfigLoader(cwd=cwd, project_root=project_root, policy=opts.extends_policy)
    loaded = loader.load(opts.config, no_config=opts.no_config, no_extends=opts.no_extends)
    console.debug(f"config sources: {loaded.origin_text()}")
    return loaded


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        if text:
            typer.echo(text, nl=False)
        return
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise FileAccessError(path=output, operation="write output", cause=exc) from exc


def _split_extensions(values: Optional[List[str]]) -> list[str]:
    out: list[str] = []
    for value in values or []:
        out.extend(part.strip().lstrip(".") for part in value.split(",") if part.strip())
    return out


@app.command()
def check(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(None, help="Paths to scan (default: current directory)."),
    max_lines: Optional[int] = typer.Option(None, "--max-lines", min=0),
    max_files: Optional[int] = typer.Option(None, "--max-files", min=-1),
    max_subdirs: Optional[int] = typer.Option(None, "--max-subdirs", min=-1),
    include: Optional[List[Path]] = typer.Option(None, "--include"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
    ext: Optional[List[str]] = typer.Option(None, "--ext"),
    count_comments: bool = typer.Option(False, "--count-comments"),
    count_blank: bool = typer.Option(False, "--count-blank"),
    warn_threshold: Optional[float] = typer.Option(None, "--warn-threshold"),
    output_format: OutputFormat = typer.Option(OutputFormat.TEXT, "--format"),
    output: Optional[Path] = typer.Option(None, "--output"),
    warn_only: bool = typer.Option(False, "--warn-only"),
    strict: bool = typer.Option(False, "--strict"),
    fail_fast: bool = typer.Option(False, "--fail-fast"),
    files: Optional[List[Path]] = typer.Option(None, "--files"),
    diff: Optional[str] = typer.Option(None, "--diff"),
    baseline: Optional[Path] = typer.Option(None, "--baseline"),
    update_baseline: Optional[UpdateMode] = typer.Option(None, "--update-baseline"),
    no_cache: bool = typer.Option(False, "--no-cache"),
    no_gitignore: bool = typer.Option(False, "--no-gitignore"),
    suggest: bool = typer.Option(False, "--suggest"),
    report_json: Optional[Path] = typer.Option(None, "--report-json"),
) -> None:
    """Check files and directories against the configured budgets."""
    opts = _globals(ctx)
    cwd = Path.cwd()
    try:
        if warn_threshold is not None and not 0.0 <= warn_threshold <= 1.0:
            raise ConfigError(
                f"--warn-threshold must be between 0.0 and 1.0, got {warn_threshold}"
            )
        project_root = discover_project_root(cwd)
        loaded = _load_config(opts, cwd, project_root)
        options = CheckOptions(
            paths=list(paths or []),
            files=list(files or []),
            include=list(include or []),
            exclude=list(exclude or []),
            extensions=_split_extensions(ext),
            max_lines=max_lines,
            max_files=max_files,
            max_subdirs=max_subdirs,
            warn_threshold=warn_threshold,
            count_comments=count_comments,
            count_blank=count_blank,
            warn_only=warn_only,
            strict=strict,
            fail_fast=fail_fast,
            diff=diff,
            baseline=baseline,
            update_baseline=update_baseline,
            no_cache=no_cache,
            no_gitignore=no_gitignore,
            suggest=suggest,
        )
        report = run_check(loaded, options, base=cwd, project_root=project_root)
        rendered = render_check(
            report,
            output_format,
            color=opts.color and output is None,
            verbose=opts.verbose > 0,
            quiet=opts.quiet,
        )
        _write_output(rendered, output)
        if report_json is not None:
            _write_output(render_json(report), report_json)
    except SlocGuardError as exc:
        _fail(exc)
    raise typer.Exit(code=report.exit_code)


def _collect_stats(
    opts: GlobalOptions, paths: Optional[List[Path]], *, no_cache: bool = False
) -> tuple[LoadedConfig, ProjectStatistics, Path]:
    """Scan and count without evaluating any rule."""
    cwd = Path.cwd()
    project_root = discover_project_root(cwd)
    loaded = _load_config(opts, cwd, project_root)
    config = loaded.config
    options = CheckOptions(paths=list(paths or []), no_cache=no_cache)
    scanner = build_scanner(config, options, base=cwd)
    content = ContentEvaluator(config.content)
    scanned = [
        f for f in scanner.scan(options.paths or [cwd]).files if not content.is_excluded(f.key)
    ]
    cache = None if no_cache else load_cache(
        cache_path(project_root), compute_config_hash(config.languages)
    )
    counter = FileCounter(LanguageRegistry.with_custom(config.languages), cache)
    outcomes = counter.count_all(scanned)
    if cache is not None and cache.dirty:
        save_cache(cache, cache_path(project_root))
    stats = ProjectStatistics.from_files(
        FileStat(o.scanned.key, o.language, o.stats) for o in outcomes if o.stats is not None
    )
    return loaded, stats, project_root


@app.command()
def stats(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(None),
    output_format: StatsFormat = typer.Option(StatsFormat.TEXT, "--format"),
    top: Optional[int] = typer.Option(None, "--top", min=1),
    group_by: Optional[GroupBy] = typer.Option(None, "--group-by"),
    trend: bool = typer.Option(False, "--trend", help="Compare with the trend history."),
    output: Optional[Path] = typer.Option(None, "--output"),
    no_cache: bool = typer.Option(False, "--no-cache"),
) -> None:
    """Report line statistics for the project."""
    opts = _globals(ctx)
    try:
        loaded, project_stats, project_root = _collect_stats(opts, paths, no_cache=no_cache)
        report_cfg = loaded.config.stats.report
        excluded = set(report_cfg.exclude)
        report = StatsReport(stats=project_stats)
        if "files" not in excluded:
            report.top = project_stats.top(top or report_cfg.top_count or DEFAULT_TOP_COUNT)
        if "breakdown" not in excluded:
            report.group_by = group_by or GroupBy.parse(report_cfg.breakdown_by) or GroupBy.LANG
            report.breakdown = project_stats.breakdown(report.group_by)
        if "trend" not in excluded and (trend or report_cfg.trend_since):
            history = load_history(history_path(project_root))
            current = TrendEntry.from_stats(project_stats, now_secs())
            if report_cfg.trend_since:
                since = int(parse_duration(report_cfg.trend_since).total_seconds())
                report.trend = history.delta_since(current, since)
            else:
                report.trend = history.delta(current)
        if output_format is StatsFormat.JSON:
            rendered = render_stats_json(report)
        elif output_format is StatsFormat.MARKDOWN:
            rendered = render_stats_markdown(report)
        else:
            rendered = render_stats_text(report)
        _write_output(rendered, output)
    except SlocGuardError as exc:
        _fail(exc)


@app.command()
def explain(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="File or directory to explain."),
    output_format: ExplainFormat = typer.Option(ExplainFormat.TEXT, "--format"),
) -> None:
    """Show which rule applies to PATH and why."""
    opts = _globals(ctx)
    cwd = Path.cwd()
    try:
        loaded = _load_config(opts, cwd, discover_project_root(cwd))
        config = loaded.config
        key = relative_key(path, cwd)
        if path.is_dir():
            explanation = explain_structure(StructureEvaluator(config.structure), key)
        else:
            line_stats: LineStats | None = None
            language = LanguageRegistry.with_custom(config.languages).by_extension(path.suffix)
            if language is not None and path.is_file():
                try:
                    counted = LineClassifier(language.syntax).classify(path.read_bytes())
                except OSError as exc:
                    raise FileAccessError(path=path, operation="read", cause=exc) from exc
                if not isinstance(counted, IgnoredFile):
                    line_stats = counted
            explanation = explain_content(ContentEvaluator(config.content), key, line_stats)
        if output_format is ExplainFormat.JSON:
            payload = explanation.to_payload()
            payload["config_sources"] = [str(source) for source in loaded.sources]
            typer.echo(json.dumps(payload, indent=2))
        else:
            typer.echo(render_text(explanation))
            typer.echo(f"Config: {loaded.origin_text()}")
    except SlocGuardError as exc:
        _fail(exc)


@app.command()
def snapshot(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(None),
    force: bool = typer.Option(False, "--force", help="Ignore min_interval_secs."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print without writing."),
) -> None:
    """Record current statistics in the trend history."""
    opts = _globals(ctx)
    try:
        loaded, project_stats, project_root = _collect_stats(opts, paths)
        outcome = record_snapshot(
            project_stats,
            history_path(project_root),
            loaded.config.trend,
            force=force,
            dry_run=dry_run,
            git_ref=head_commit(Path.cwd()),
        )
    except SlocGuardError as exc:
        _fail(exc)
    entry = outcome.entry
    summary = f"{entry.total_files} files, {entry.code} code lines"
    if outcome.recorded:
        if not opts.quiet:
            typer.echo(f"Snapshot recorded: {summary}")
    else:
        typer.echo(f"Snapshot not recorded ({outcome.reason}): {summary}")


@app.command()
def init(
    preset: Optional[str] = typer.Option(None, "--preset", help="Extend a built-in preset."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config."),
    detect: bool = typer.Option(
        False, "--detect", help="Tune extensions and limits to the detected project type."
    ),
) -> None:
    """Write a starter .sloc-guard.toml in the current directory."""
    cwd = Path.cwd()
    target = cwd / CONFIG_FILE_NAME
    try:
        if preset is not None and detect:
            raise ConfigError("--preset and --detect cannot be combined")
        if target.exists() and not force:
            raise ConfigError(
                f"{CONFIG_FILE_NAME} already exists",
                detail="Use --force to overwrite it",
            )
        if preset is not None:
            preset_text(preset)
            text = f'version = "2"\nextends = "{PRESET_PREFIX}{preset}"\n'
        elif detect:
            detected = detect_projects(cwd)
            for line in detected.describe():
                typer.echo(line, err=True)
            text = render_detected_config(detected)
        else:
            text = _DEFAULT_CONFIG_TEMPLATE
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise FileAccessError(path=target, operation="write config", cause=exc) from exc
    except SlocGuardError as exc:
        _fail(exc)
    typer.echo(f"Wrote {target.name}")
    if preset is None:
        typer.echo(f"Available presets: {', '.join(available_presets())}")


@config_app.command("validate")
def config_validate(
    ctx: typer.Context,
    path: Path = typer.Argument(Path(CONFIG_FILE_NAME), help="Config file to validate."),
) -> None:
    """Check syntax, the extends chain and every semantic rule of a config file."""
    opts = _globals(ctx)
    cwd = Path.cwd()
    try:
        if not path.is_file():
            raise ConfigError(f"Configuration file not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FileAccessError(path=path, operation="read config", cause=exc) from exc
        # Syntax first, so a broken file reports its own line and column.
        parse_toml(text, origin=str(path))
        loader = ConfigLoader(
            cwd=cwd, project_root=discover_project_root(cwd), policy=opts.extends_policy
        )
        loader.load(path, no_extends=opts.no_extends)
    except SlocGuardError as exc:
        _fail(exc)
    typer.echo(f"Configuration is valid: {path}")


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    output_format: ConfigFormat = typer.Option(ConfigFormat.TEXT, "--format"),
) -> None:
    """Print the effective configuration after extends and presets are merged."""
    opts = _globals(ctx)
    cwd = Path.cwd()
    try:
        loaded = _load_config(opts, cwd, discover_project_root(cwd))
    except SlocGuardError as exc:
        _fail(exc)
    if output_format is ConfigFormat.JSON:
        typer.echo(config_report.render_json(loaded.config), nl=False)
    else:
        typer.echo(config_report.render_text(loaded.config, loaded.origin_text()), nl=False)


@app.command()
def version() -> None:
    typer.echo(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
