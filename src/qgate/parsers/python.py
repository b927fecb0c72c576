# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers for Python-related tooling output."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Final

from .base import (
    JsonValue,
    ParseContext,
    ParseOutcome,
    build_issue,
    expect_list,
    expect_mapping,
    iter_dicts,
    iter_pattern_matches,
)

_BLACK_PATTERN: Final[re.Pattern[str]] = re.compile(r"^would reformat (?P<file>.+)$")
_ISORT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^ERROR: (?P<file>.+?) (?P<message>Imports are incorrectly sorted.*)$",
)
_FLAKE8_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<file>.+?):(?P<line>\d+):(?P<column>\d+): (?P<code>[A-Z]+\d+) (?P<message>.+)$",
)
_MYPY_TEXT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<file>[^:]+):(?P<line>\d+):(?:(?P<column>\d+):)? "
    r"(?P<severity>error|warning|note): (?P<message>.+?)(?:\s+\[(?P<code>[\w-]+)\])?$",
)


def parse_black(lines: Sequence[str], context: ParseContext) -> ParseOutcome:
    """Parse ``black --check`` stderr into one issue per unformatted file."""

    issues = [
        build_issue(
            context,
            file=match.group("file"),
            rule="would-reformat",
            message="File would be reformatted",
            payload=match.group(0),
        )
        for match in iter_pattern_matches(lines, _BLACK_PATTERN)
    ]
    return ParseOutcome(issues=issues)


def parse_isort(lines: Sequence[str], context: ParseContext) -> ParseOutcome:
    """Parse ``isort --check-only`` stderr into one issue per unsorted file."""

    issues = [
        build_issue(
            context,
            file=match.group("file"),
            rule="incorrectly-sorted",
            message=match.group("message"),
            payload=match.group(0),
        )
        for match in iter_pattern_matches(lines, _ISORT_PATTERN)
    ]
    return ParseOutcome(issues=issues)


def parse_flake8(lines: Sequence[str], context: ParseContext) -> ParseOutcome:
    """Parse flake8's default ``path:row:col: CODE text`` format."""

    issues = [
        build_issue(
            context,
            file=match.group("file"),
            line=match.group("line"),
            column=match.group("column"),
            rule=match.group("code"),
            message=match.group("message"),
            payload=match.group(0),
        )
        for match in iter_pattern_matches(lines, _FLAKE8_PATTERN)
    ]
    return ParseOutcome(issues=issues)


def parse_mypy(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse mypy's ``-O json`` output (one JSON object per line)."""

    records = [payload] if isinstance(payload, Mapping) else expect_list(payload, "mypy output")
    issues = []
    for item in iter_dicts(records):
        severity = str(item.get("severity") or "error")
        message = str(item["message"])
        hint = item.get("hint")
        if hint:
            message = f"{message} ({hint})"
        issues.append(
            build_issue(
                context,
                file=item.get("file"),
                line=item.get("line"),
                column=_one_based(item.get("column")),
                rule=item.get("code") or "",
                label=severity,
                message=message,
                payload=dict(item),
            ),
        )
    return ParseOutcome(issues=issues)


def _one_based(value: JsonValue) -> JsonValue:
    # mypy JSON, bandit and pylint report zero-based columns.
    if isinstance(value, int) and not isinstance(value, bool):
        return value + 1
    return value


def parse_mypy_text(lines: Sequence[str], context: ParseContext) -> ParseOutcome:
    """Parse mypy's default text output with ``--show-error-codes``."""

    issues = [
        build_issue(
            context,
            file=match.group("file"),
            line=match.group("line"),
            column=match.group("column"),
            rule=match.group("code") or "",
            label=match.group("severity"),
            message=match.group("message"),
            payload=match.group(0),
        )
        for match in iter_pattern_matches(lines, _MYPY_TEXT_PATTERN, skip_prefixes=("Found ", "Success:"))
    ]
    return ParseOutcome(issues=issues)


def parse_bandit(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse Bandit's ``-f json`` report."""

    document = expect_mapping(payload, "bandit report")
    results = expect_list(document.get("results", []), "bandit results")
    issues = [
        build_issue(
            context,
            file=item.get("filename"),
            line=item.get("line_number"),
            column=_one_based(item.get("col_offset")),
            rule=str(item.get("test_id") or ""),
            label=str(item.get("issue_severity") or ""),
            message=str(item["issue_text"]),
            payload=dict(item),
        )
        for item in iter_dicts(results)
    ]
    return ParseOutcome(issues=issues)


def parse_ruff(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse Ruff's ``--output-format json`` report."""

    if isinstance(payload, Mapping):
        payload = payload.get("diagnostics", [])
    records = expect_list(payload, "ruff output")
    issues = []
    for item in iter_dicts(records):
        location = item.get("location")
        location = location if isinstance(location, Mapping) else {}
        issues.append(
            build_issue(
                context,
                file=item.get("filename"),
                line=location.get("row"),
                column=location.get("column"),
                rule=str(item.get("code") or "syntax-error"),
                message=str(item["message"]),
                payload=dict(item),
            ),
        )
    return ParseOutcome(issues=issues)


def parse_pylint(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse pylint's ``--output-format=json`` report."""

    records = expect_list(payload, "pylint output")
    issues = [
        build_issue(
            context,
            file=item.get("path"),
            line=item.get("line"),
            column=_one_based(item.get("column")),
            rule=str(item.get("message-id") or item.get("symbol") or ""),
            label=str(item.get("type") or ""),
            message=str(item["message"]),
            payload=dict(item),
        )
        for item in iter_dicts(records)
    ]
    return ParseOutcome(issues=issues)


__all__ = [
    "parse_bandit",
    "parse_black",
    "parse_flake8",
    "parse_isort",
    "parse_mypy",
    "parse_mypy_text",
    "parse_pylint",
    "parse_ruff",
]
