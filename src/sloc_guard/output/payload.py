"""Plain-data views of check results shared by the machine-readable renderers."""

from __future__ import annotations

from sloc_guard import __version__
from sloc_guard.check import CheckReport
from sloc_guard.checker.result import CheckResult, Failed, Warned
from sloc_guard.json_types import JSONObject


def usage_percent(result: CheckResult) -> float:
    if result.limit <= 0:
        return 100.0 if result.actual > 0 else 0.0
    return round(result.actual * 100.0 / result.limit, 1)


def describe(result: CheckResult) -> str:
    """One-line human message, shared by text, SARIF and markdown output."""
    if result.violation_category is not None:
        kind = result.violation_category.value.replace("_", " ")
        text = f"{kind}: {result.actual} (limit {result.limit})"
        if result.detail:
            text = f"{kind}: {result.detail}"
        return text
    return f"{result.actual} lines (limit {result.limit})"


def result_payload(result: CheckResult) -> JSONObject:
    payload: JSONObject = {
        "path": result.path,
        "status": result.status.value,
        "actual": result.actual,
        "limit": result.limit,
        "stats": result.raw_stats.to_payload(),
        "effective": result.stats.code,
    }
    if result.override_reason:
        payload["override_reason"] = result.override_reason
    if result.violation_category is not None:
        payload["violation"] = result.violation_category.value
    if result.detail:
        payload["detail"] = result.detail
    if isinstance(result, (Warned, Failed)) and result.suggestions is not None:
        payload["suggestions"] = result.suggestions.to_payload()
    return payload


def report_payload(report: CheckReport, *, include_passed: bool = True) -> JSONObject:
    summary = report.summary
    results = [
        result_payload(r)
        for r in report.results
        if include_passed or r.status.value != "passed"
    ]
    return {
        "version": __version__,
        "exit_code": report.exit_code,
        "summary": {
            "total": summary.total,
            "passed": summary.passed,
            "warnings": summary.warnings,
            "failed": summary.failed,
            "grandfathered": summary.grandfathered,
        },
        "results": results,
        "ignored_files": list(report.ignored_files),
        "expired_rules": [rule.describe() for rule in report.expired_rules],
        "stale_baseline": list(report.stale_baseline),
    }
