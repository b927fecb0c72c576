# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers for tools that report project-level percentages."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from xml.etree import ElementTree  # nosec B405

from ..models import RunMetrics
from .base import JsonValue, ParseContext, ParseError, ParseOutcome, build_issue, expect_list, expect_mapping, iter_dicts


def _percentage(value: Any, what: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"{what} is not numeric: {value!r}") from exc
    if not 0.0 <= number <= 100.0:
        raise ParseError(f"{what} out of range: {number}")
    return round(number, 2)


def parse_jscpd(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse a jscpd ``jscpd-report.json`` document.

    Each duplicated fragment becomes one issue anchored at its first
    occurrence; the total duplicated-lines percentage becomes the run's
    duplication metric.
    """

    document = expect_mapping(payload, "jscpd report")
    statistics = expect_mapping(document.get("statistics"), "jscpd statistics")
    total = expect_mapping(statistics.get("total"), "jscpd total statistics")
    duplication = _percentage(total.get("percentage"), "jscpd duplication percentage")

    issues = []
    for clone in iter_dicts(expect_list(document.get("duplicates", []), "jscpd duplicates")):
        first = expect_mapping(clone.get("firstFile"), "jscpd firstFile")
        second = clone.get("secondFile")
        second = second if isinstance(second, Mapping) else {}
        lines = clone.get("lines")
        message = f"Duplicated {lines} lines"
        if second.get("name"):
            message += f" (also in {second['name']}:{second.get('start')}-{second.get('end')})"
        issues.append(
            build_issue(
                context,
                file=first.get("name"),
                line=first.get("start"),
                rule="duplicate-code",
                message=message,
                payload={key: value for key, value in clone.items() if key != "fragment"},
            ),
        )
    return ParseOutcome(issues=issues, metrics=RunMetrics(duplication=duplication))


def parse_cobertura(root: ElementTree.Element, context: ParseContext) -> ParseOutcome:
    """Parse a Cobertura ``coverage.xml`` document into a coverage metric."""

    del context
    if root.tag != "coverage":
        raise ParseError(f"expected a <coverage> root element, got <{root.tag}>")
    line_rate = root.get("line-rate")
    if line_rate is None:
        raise ParseError("cobertura report has no line-rate attribute")
    coverage = _percentage(float(line_rate) * 100, "cobertura line coverage")
    return ParseOutcome(metrics=RunMetrics(coverage=coverage))


__all__ = ["parse_cobertura", "parse_jscpd"]
