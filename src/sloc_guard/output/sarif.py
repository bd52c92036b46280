"""SARIF 2.1.0 log for code-scanning integrations."""

from __future__ import annotations

import json

from sloc_guard import __version__
from sloc_guard.check import CheckReport
from sloc_guard.checker.result import CheckResult, Failed, Status, Warned
from sloc_guard.json_types import JSONObject
from sloc_guard.output.payload import describe, usage_percent

SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
)
SARIF_VERSION = "2.1.0"
TOOL_NAME = "sloc-guard"

RULE_LINE_LIMIT_EXCEEDED = "sloc-guard/line-limit-exceeded"
RULE_LINE_LIMIT_WARNING = "sloc-guard/line-limit-warning"
RULE_STRUCTURE_VIOLATION = "sloc-guard/structure-violation"

_RULES: list[JSONObject] = [
    {
        "id": RULE_LINE_LIMIT_EXCEEDED,
        "name": "LineLimitExceeded",
        "shortDescription": {"text": "File exceeds its line limit"},
        "defaultConfiguration": {"level": "error"},
    },
    {
        "id": RULE_LINE_LIMIT_WARNING,
        "name": "LineLimitWarning",
        "shortDescription": {"text": "File is close to its line limit"},
        "defaultConfiguration": {"level": "warning"},
    },
    {
        "id": RULE_STRUCTURE_VIOLATION,
        "name": "StructureViolation",
        "shortDescription": {"text": "Directory layout violates a structure rule"},
        "defaultConfiguration": {"level": "error"},
    },
]
_RULE_INDEX = {rule["id"]: index for index, rule in enumerate(_RULES)}


def _rule_id(result: CheckResult) -> str:
    if result.is_structure:
        return RULE_STRUCTURE_VIOLATION
    if result.status is Status.WARNING:
        return RULE_LINE_LIMIT_WARNING
    return RULE_LINE_LIMIT_EXCEEDED


def _sarif_result(result: CheckResult) -> JSONObject:
    rule_id = _rule_id(result)
    level = "warning" if result.status is Status.WARNING else "error"
    properties: JSONObject = {
        "sloc": result.actual,
        "limit": result.limit,
        "usagePercent": usage_percent(result),
        "stats": result.raw_stats.to_payload(),
    }
    if result.override_reason:
        properties["overrideReason"] = result.override_reason
    if result.violation_category is not None:
        properties["violation"] = result.violation_category.value
    if isinstance(result, (Warned, Failed)) and result.suggestions is not None:
        properties["suggestions"] = result.suggestions.to_payload()
    payload: JSONObject = {
        "ruleId": rule_id,
        "ruleIndex": _RULE_INDEX[rule_id],
        "level": level,
        "message": {"text": f"{result.path}: {describe(result)}"},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": result.path, "uriBaseId": "%SRCROOT%"}
                }
            }
        ],
        "properties": properties,
    }
    if result.status is Status.GRANDFATHERED:
        payload["level"] = "note"
        payload["suppressions"] = [
            {"kind": "external", "justification": "Listed in baseline"}
        ]
    return payload


def render(report: CheckReport) -> str:
    log = {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "version": __version__,
                        "rules": _RULES,
                    }
                },
                "results": [
                    _sarif_result(r) for r in report.results if r.status is not Status.PASSED
                ],
            }
        ],
    }
    return json.dumps(log, indent=2) + "\n"
