from __future__ import annotations

from sloc_guard.check import CheckReport
from sloc_guard.checker.result import Status
from sloc_guard.output.payload import describe

_ICONS = {
    Status.PASSED: "pass",
    Status.WARNING: "warning",
    Status.FAILED: "failed",
    Status.GRANDFATHERED: "grandfathered",
}


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def render(report: CheckReport) -> str:
    summary = report.summary
    lines = [
        "## sloc-guard report",
        "",
        "| Total | Passed | Warnings | Failed | Grandfathered |",
        "|---:|---:|---:|---:|---:|",
        f"| {summary.total} | {summary.passed} | {summary.warnings} | "
        f"{summary.failed} | {summary.grandfathered} |",
    ]
    flagged = [r for r in report.results if r.status is not Status.PASSED]
    if flagged:
        lines += [
            "",
            "| Status | Path | Detail | Reason |",
            "|---|---|---|---|",
        ]
        for result in flagged:
            lines.append(
                f"| {_ICONS[result.status]} | `{_cell(result.path)}` | "
                f"{_cell(describe(result))} | {_cell(result.override_reason or '')} |"
            )
    return "\n".join(lines) + "\n"
