# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Machine-readable report emitters (JSON and SARIF)."""

from __future__ import annotations

import json
from typing import Any, Final

from ..models import AggregatedReport, MergedIssue, RunResult, RunStatus
from ..severity import SEVERITY_ORDER, severity_to_sarif

SARIF_VERSION: Final[str] = "2.1.0"
SARIF_SCHEMA: Final[str] = "https://json.schemastore.org/sarif-2.1.0.json"
REPORT_SCHEMA_VERSION: Final[int] = 1


def _dump(document: Any) -> str:
    return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False, default=str) + "\n"


def tool_entry(result: RunResult) -> dict[str, Any]:
    """Return the stable JSON description of one tool's run."""

    return {
        "name": result.tool,
        "status": result.status.value,
        "duration": round(result.duration, 3),
        "returncode": result.returncode,
        "issue_count": len(result.issues),
        "coverage": result.metrics.coverage,
        "duplication": result.metrics.duplication,
        "error": result.error,
    }


def issue_entry(issue: MergedIssue) -> dict[str, Any]:
    """Return the stable JSON description of one deduplicated issue."""

    return {
        "tool": issue.tool,
        "tools": list(issue.tools),
        "file": issue.file,
        "line": issue.line,
        "column": issue.column,
        "severity": issue.severity.value,
        "rule": issue.rule,
        "rule_class": issue.rule_class.value,
        "message": issue.message,
        "payloads": list(issue.payloads),
    }


def report_document(report: AggregatedReport) -> dict[str, Any]:
    """Return the JSON-ready mapping for ``report``."""

    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "verdict": report.verdict.value if report.verdict is not None else None,
        "reasons": list(report.reasons),
        "summary": {severity.value: report.summary.get(severity, 0) for severity in SEVERITY_ORDER},
        "coverage": report.coverage,
        "duplication": report.duplication,
        "tools": [tool_entry(result) for result in report.ordered_results()],
        "issues": [issue_entry(issue) for issue in report.issues],
    }


def render_json(report: AggregatedReport) -> str:
    """Serialise ``report`` using the stable JSON schema."""

    return _dump(report_document(report))


def _sarif_result(issue: MergedIssue) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "ruleId": issue.rule or issue.rule_class.value,
        "level": severity_to_sarif(issue.severity),
        "message": {"text": issue.message},
        "properties": {
            "severity": issue.severity.value,
            "ruleClass": issue.rule_class.value,
            "tools": list(issue.tools),
        },
    }
    if issue.file:
        physical: dict[str, Any] = {"artifactLocation": {"uri": issue.file}}
        region: dict[str, int] = {}
        if issue.line is not None:
            region["startLine"] = issue.line
        if issue.column is not None:
            region["startColumn"] = issue.column
        if region:
            physical["region"] = region
        entry["locations"] = [{"physicalLocation": physical}]
    return entry


def _sarif_run(result: RunResult, issues: list[MergedIssue]) -> dict[str, Any]:
    rules = sorted({issue.rule or issue.rule_class.value for issue in issues})
    invocation: dict[str, Any] = {"executionSuccessful": result.status is RunStatus.SUCCESS}
    if result.returncode is not None:
        invocation["exitCode"] = result.returncode
    if result.error:
        invocation["toolExecutionNotifications"] = [{"level": "error", "message": {"text": result.error}}]
    return {
        "tool": {"driver": {"name": result.tool, "rules": [{"id": rule} for rule in rules]}},
        "invocations": [invocation],
        "results": [_sarif_result(issue) for issue in issues],
    }


def render_sarif(report: AggregatedReport) -> str:
    """Serialise ``report`` as a SARIF 2.1.0 log with one run per tool.

    A merged issue is attributed to its representative tool; every
    contributing tool is listed under ``properties.tools``.
    """

    by_tool: dict[str, list[MergedIssue]] = {name: [] for name in report.results}
    for issue in report.issues:
        by_tool.setdefault(issue.tool, []).append(issue)
    runs = [_sarif_run(result, by_tool[result.tool]) for result in report.ordered_results()]
    return _dump({"version": SARIF_VERSION, "$schema": SARIF_SCHEMA, "runs": runs})


__all__ = [
    "REPORT_SCHEMA_VERSION",
    "SARIF_SCHEMA",
    "SARIF_VERSION",
    "issue_entry",
    "render_json",
    "render_sarif",
    "report_document",
    "tool_entry",
]
