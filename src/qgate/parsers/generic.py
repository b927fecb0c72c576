# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers for tool-agnostic report formats."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from xml.etree import ElementTree  # nosec B405

from .base import (
    JsonValue,
    ParseContext,
    ParseError,
    ParseOutcome,
    build_issue,
    expect_list,
    expect_mapping,
    iter_dicts,
)


def parse_checkstyle(root: ElementTree.Element, context: ParseContext) -> ParseOutcome:
    """Parse a Checkstyle XML document (``<checkstyle><file><error/>``)."""

    if root.tag != "checkstyle":
        raise ParseError(f"expected a <checkstyle> root element, got <{root.tag}>")
    issues = []
    for file_node in root.iter("file"):
        filename = file_node.get("name")
        for error in file_node.iter("error"):
            issues.append(
                build_issue(
                    context,
                    file=filename,
                    line=error.get("line"),
                    column=error.get("column"),
                    rule=error.get("source") or "",
                    label=error.get("severity"),
                    message=error.get("message") or "",
                    payload=dict(error.attrib),
                ),
            )
    return ParseOutcome(issues=issues)


def parse_sarif(payload: JsonValue, context: ParseContext) -> ParseOutcome:
    """Parse a SARIF 2.1.0 log produced by any SARIF-capable analyser."""

    document = expect_mapping(payload, "SARIF log")
    issues = []
    for run in iter_dicts(expect_list(document.get("runs"), "SARIF runs")):
        for result in iter_dicts(expect_list(run.get("results", []), "SARIF results")):
            message = result.get("message")
            text = message.get("text", "") if isinstance(message, Mapping) else str(message or "")
            file, line, column = _sarif_location(result.get("locations"))
            issues.append(
                build_issue(
                    context,
                    file=file,
                    line=line,
                    column=column,
                    rule=str(result.get("ruleId") or ""),
                    label=str(result.get("level") or "warning"),
                    message=text,
                    payload=dict(result),
                ),
            )
    return ParseOutcome(issues=issues)


def _sarif_location(locations: JsonValue) -> tuple[str | None, JsonValue, JsonValue]:
    for location in iter_dicts(locations or []):
        physical = location.get("physicalLocation")
        if not isinstance(physical, Mapping):
            continue
        artifact = physical.get("artifactLocation")
        region = physical.get("region")
        region = region if isinstance(region, Mapping) else {}
        uri = artifact.get("uri") if isinstance(artifact, Mapping) else None
        return uri, region.get("startLine"), region.get("startColumn")
    return None, None, None


def parse_regex(lines: Sequence[str], context: ParseContext) -> ParseOutcome:
    """Parse arbitrary line-oriented output with the tool's configured pattern.

    The pattern must define a ``message`` group and may define ``file``,
    ``line``, ``column``, ``rule`` and ``severity`` groups.
    """

    if not context.spec.pattern:
        raise ParseError(f"{context.spec.name}: the regex parser requires a 'pattern'")
    pattern = re.compile(context.spec.pattern)
    issues = []
    for raw_line in lines:
        match = pattern.search(raw_line)
        if match is None:
            continue
        groups = match.groupdict()
        issues.append(
            build_issue(
                context,
                file=groups.get("file"),
                line=groups.get("line"),
                column=groups.get("column"),
                rule=groups.get("rule") or "",
                label=groups.get("severity"),
                message=groups.get("message") or raw_line,
                payload=raw_line,
            ),
        )
    return ParseOutcome(issues=issues)


__all__ = ["parse_checkstyle", "parse_regex", "parse_sarif"]
