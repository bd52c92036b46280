from __future__ import annotations

from enum import Enum
import json

from sloc_guard.check import CheckReport
from sloc_guard.output import html, markdown, sarif, text
from sloc_guard.output.payload import report_payload


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"
    MARKDOWN = "markdown"
    HTML = "html"


def render_json(report: CheckReport) -> str:
    return json.dumps(report_payload(report), indent=2) + "\n"


def render_check(
    report: CheckReport,
    fmt: OutputFormat,
    *,
    color: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> str:
    if fmt is OutputFormat.JSON:
        return render_json(report)
    if fmt is OutputFormat.SARIF:
        return sarif.render(report)
    if fmt is OutputFormat.MARKDOWN:
        return markdown.render(report)
    if fmt is OutputFormat.HTML:
        return html.render(report)
    return text.render(report, color=color, verbose=verbose, quiet=quiet)


__all__ = ["OutputFormat", "render_check", "render_json"]
