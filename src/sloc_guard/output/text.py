from __future__ import annotations

import typer

from sloc_guard.check import CheckReport
from sloc_guard.checker.result import CheckResult, Failed, Status, Warned
from sloc_guard.output.payload import describe

_LABELS = {
    Status.PASSED: ("PASS", typer.colors.GREEN),
    Status.WARNING: ("WARN", typer.colors.YELLOW),
    Status.FAILED: ("FAIL", typer.colors.RED),
    Status.GRANDFATHERED: ("BASE", typer.colors.CYAN),
}


def _label(result: CheckResult, color: bool) -> str:
    text, fg = _LABELS[result.status]
    return typer.style(text, fg=fg, bold=True) if color else text


def _result_lines(result: CheckResult, color: bool) -> list[str]:
    lines = [f"{_label(result, color)} {result.path}: {describe(result)}"]
    if result.override_reason:
        lines.append(f"     reason: {result.override_reason}")
    if isinstance(result, (Warned, Failed)) and result.suggestions is not None:
        lines.append("     split suggestion:")
        for chunk in result.suggestions.chunks:
            lines.append(
                f"       {chunk.suggested_name}: lines {chunk.start_line}-{chunk.end_line} "
                f"({chunk.line_count} lines; {', '.join(chunk.functions)})"
            )
    return lines


def render(
    report: CheckReport, *, color: bool = False, verbose: bool = False, quiet: bool = False
) -> str:
    lines: list[str] = []
    for result in report.results:
        if result.status is Status.PASSED and not verbose:
            continue
        lines.extend(_result_lines(result, color))
    if quiet:
        return "\n".join(lines) + "\n" if lines else ""
    summary = report.summary
    if lines:
        lines.append("")
    lines.append(
        f"Summary: {summary.total} checked, {summary.passed} passed, "
        f"{summary.warnings} warnings, {summary.failed} failed, "
        f"{summary.grandfathered} grandfathered"
    )
    if report.ignored_files:
        lines.append(f"Ignored by directive: {len(report.ignored_files)} file(s)")
    return "\n".join(lines) + "\n"
