from __future__ import annotations

from html import escape

from sloc_guard.check import CheckReport
from sloc_guard.checker.result import Status
from sloc_guard.output.payload import describe

_STYLE = """
body { font-family: sans-serif; margin: 2em; }
table { border-collapse: collapse; }
th, td { border: 1px solid #ccc; padding: 4px 8px; text-align: left; }
.failed { color: #b00020; }
.warning { color: #a15c00; }
.grandfathered { color: #555; }
.passed { color: #1b5e20; }
"""


def render(report: CheckReport) -> str:
    summary = report.summary
    rows = []
    for result in report.results:
        if result.status is Status.PASSED:
            continue
        rows.append(
            "<tr>"
            f'<td class="{result.status.value}">{escape(result.status.value)}</td>'
            f"<td><code>{escape(result.path)}</code></td>"
            f"<td>{escape(describe(result))}</td>"
            f"<td>{escape(result.override_reason or '')}</td>"
            "</tr>"
        )
    body = "\n".join(rows) if rows else '<tr><td colspan="4">No violations.</td></tr>'
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
        "<title>sloc-guard report</title>\n"
        f"<style>{_STYLE}</style>\n</head>\n<body>\n"
        "<h1>sloc-guard report</h1>\n"
        f"<p>{summary.total} checked, {summary.passed} passed, "
        f"{summary.warnings} warnings, {summary.failed} failed, "
        f"{summary.grandfathered} grandfathered</p>\n"
        "<table>\n<thead><tr><th>Status</th><th>Path</th><th>Detail</th><th>Reason</th></tr></thead>\n"
        f"<tbody>\n{body}\n</tbody>\n</table>\n</body>\n</html>\n"
    )
