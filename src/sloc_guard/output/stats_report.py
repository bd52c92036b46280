"""Renderers for the ``stats`` command."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json

from sloc_guard.json_types import JSONObject
from sloc_guard.stats import BreakdownRow, FileStat, GroupBy, ProjectStatistics
from sloc_guard.trend import TrendDelta


@dataclass
class StatsReport:
    stats: ProjectStatistics
    top: list[FileStat] | None = None
    group_by: GroupBy | None = None
    breakdown: list[BreakdownRow] | None = None
    trend: TrendDelta | None = None

    def to_payload(self) -> JSONObject:
        payload: JSONObject = {"summary": self.stats.summary_payload()}
        if self.top is not None:
            payload["top_files"] = [f.to_payload() for f in self.top]
        if self.breakdown is not None and self.group_by is not None:
            payload["breakdown"] = {
                "by": self.group_by.value,
                "rows": [row.to_payload() for row in self.breakdown],
            }
        if self.trend is not None:
            payload["trend"] = self.trend.to_payload()
        return payload


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def _when(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def render_text(report: StatsReport) -> str:
    s = report.stats.summary_payload()
    lines = [
        f"Files: {s['total_files']}",
        f"Lines: {s['total_lines']} (code {s['code']}, comment {s['comment']}, "
        f"blank {s['blank']}, ignored {s['ignored']})",
        f"Average code per file: {s['average_code']}",
    ]
    if report.top:
        lines += ["", "Largest files:"]
        width = max(len(str(f.stats.code)) for f in report.top)
        for item in report.top:
            lines.append(f"  {item.stats.code:>{width}}  {item.path}")
    if report.breakdown and report.group_by is not None:
        label = "language" if report.group_by is GroupBy.LANG else "directory"
        lines += ["", f"By {label}:"]
        for row in report.breakdown:
            lines.append(f"  {row.key}: {row.files} files, {row.stats.code} code")
    if report.trend is not None:
        t = report.trend
        lines += [
            "",
            f"Since {_when(t.previous_timestamp)}: files {_signed(t.files)}, "
            f"code {_signed(t.code)}, comment {_signed(t.comment)}, blank {_signed(t.blank)}",
        ]
    return "\n".join(lines) + "\n"


def render_json(report: StatsReport) -> str:
    return json.dumps(report.to_payload(), indent=2) + "\n"


def render_markdown(report: StatsReport) -> str:
    s = report.stats.summary_payload()
    lines = [
        "## Code statistics",
        "",
        "| Files | Lines | Code | Comment | Blank |",
        "|---:|---:|---:|---:|---:|",
        f"| {s['total_files']} | {s['total_lines']} | {s['code']} | {s['comment']} | {s['blank']} |",
    ]
    if report.top:
        lines += ["", "### Largest files", "", "| Code | Path |", "|---:|---|"]
        lines += [f"| {f.stats.code} | `{f.path}` |" for f in report.top]
    if report.breakdown and report.group_by is not None:
        lines += ["", "### Breakdown", "", "| Group | Files | Code |", "|---|---:|---:|"]
        lines += [f"| {r.key} | {r.files} | {r.stats.code} |" for r in report.breakdown]
    if report.trend is not None:
        t = report.trend
        lines += [
            "",
            f"Trend since {_when(t.previous_timestamp)}: files {_signed(t.files)}, "
            f"code {_signed(t.code)}",
        ]
    return "\n".join(lines) + "\n"
