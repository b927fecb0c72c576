# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared parser infrastructure and helper utilities."""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

# Bandit: XML is produced by local analysis tools the user configured, not
# by untrusted network peers.
from xml.etree import ElementTree  # nosec B405

from pydantic import ValidationError

from ..models import Issue, OutputFormat, RunMetrics, ToolSpec
from ..taxonomy import classify_rule

JsonValue = Any
Stream = Literal["stdout", "stderr", "both"]


class ParseError(ValueError):
    """Raised when tool output cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class ParseContext:
    """Information a parser needs beyond the raw output streams."""

    spec: ToolSpec
    root: Path
    report: str | None = None

    def select(self, stdout: str, stderr: str, stream: Stream = "stdout") -> str:
        """Return the text a parser should read.

        A report file read on behalf of the tool takes precedence over the
        captured streams.
        """

        if self.report is not None:
            return self.report
        if stream == "stderr":
            return stderr
        if stream == "both":
            return "\n".join(part for part in (stdout, stderr) if part)
        return stdout


@dataclass(slots=True)
class ParseOutcome:
    """Issues and metrics extracted from one tool invocation."""

    issues: list[Issue] = field(default_factory=list)
    metrics: RunMetrics = field(default_factory=RunMetrics)


class Parser(Protocol):
    """Protocol implemented by every registered output parser."""

    output_format: OutputFormat

    def parse(self, stdout: str, stderr: str, *, context: ParseContext) -> ParseOutcome:
        """Translate raw tool output into normalised issues and metrics."""
        ...


JsonTransform = Callable[[JsonValue, ParseContext], ParseOutcome]
TextTransform = Callable[[Sequence[str], ParseContext], ParseOutcome]
XmlTransform = Callable[[ElementTree.Element, ParseContext], ParseOutcome]

_TRANSFORM_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def load_json_stream(text: str) -> JsonValue:
    """Decode ``text`` as a JSON document or newline-delimited JSON.

    Args:
        text: Raw tool output.

    Returns:
        JsonValue: Decoded document, a list of decoded lines for NDJSON, or
        ``None`` when ``text`` is blank.

    Raises:
        ParseError: If the text is neither valid JSON nor valid NDJSON.
    """

    stripped = text.strip()
    if not stripped:
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        lines = [line.strip() for line in stripped.splitlines() if line.strip()]
        if len(lines) < 2:
            raise ParseError(f"malformed JSON output: {exc}") from exc
        payload: list[JsonValue] = []
        for number, line in enumerate(lines, start=1):
            try:
                payload.append(json.loads(line))
            except json.JSONDecodeError as line_exc:
                raise ParseError(f"malformed JSON on line {number}: {line_exc}") from line_exc
            except RecursionError as line_exc:
                raise ParseError(f"JSON on line {number} is nested too deeply") from line_exc
        return payload
    except RecursionError as exc:
        raise ParseError("JSON output is nested too deeply") from exc


def iter_dicts(value: JsonValue) -> Iterator[Mapping[str, JsonValue]]:
    """Yield mapping items from ``value`` when it is a sequence of dict-like objects."""

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        for item in value:
            if isinstance(item, Mapping):
                yield item


def expect_mapping(value: JsonValue, what: str) -> Mapping[str, JsonValue]:
    """Return ``value`` when it is a mapping, else raise :class:`ParseError`."""

    if not isinstance(value, Mapping):
        raise ParseError(f"expected a JSON object for {what}, got {type(value).__name__}")
    return value


def expect_list(value: JsonValue, what: str) -> list[JsonValue]:
    """Return ``value`` when it is a list, else raise :class:`ParseError`."""

    if not isinstance(value, list):
        raise ParseError(f"expected a JSON array for {what}, got {type(value).__name__}")
    return value


def coerce_int(value: Any) -> int | None:
    """Return ``value`` as a positive ``int`` where possible."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def resolve_path(raw: str | None, root: Path) -> str | None:
    """Return an absolute, normalised form of ``raw`` anchored at ``root``."""

    if raw is None:
        return None
    text = str(raw).strip()
    if text.startswith("file://"):
        text = text[len("file://") :]
    if not text:
        return None
    candidate = Path(text)
    if not candidate.is_absolute():
        candidate = root / candidate
    return os.path.normpath(str(candidate))


def build_issue(
    context: ParseContext,
    *,
    message: str,
    file: str | None = None,
    line: Any = None,
    column: Any = None,
    rule: str | None = None,
    label: str | None = None,
    payload: Any = None,
) -> Issue:
    """Create an :class:`Issue` for ``context.spec`` from raw tool fields.

    Args:
        context: Parser context providing the tool spec and run root.
        message: Human readable finding text.
        file: Path as reported by the tool, relative or absolute.
        line: Line number as reported by the tool.
        column: Column number as reported by the tool.
        rule: Tool-specific rule identifier.
        label: Native severity label; falls back to ``rule`` when absent.
        payload: Raw record preserved for passthrough.

    Returns:
        Issue: Normalised finding.
    """

    spec = context.spec
    code = (rule or "").strip()
    return Issue(
        tool=spec.name,
        file=resolve_path(file, context.root),
        line=coerce_int(line),
        column=coerce_int(column),
        severity=spec.map_severity(label if label else code),
        rule=code,
        message=message.strip(),
        rule_class=classify_rule(spec.name, code, default=spec.rule_class, overrides=spec.rule_classes),
        payload=payload,
    )


def iter_pattern_matches(
    lines: Sequence[str],
    pattern: re.Pattern[str],
    *,
    skip_prefixes: Sequence[str] = (),
) -> Iterator[re.Match[str]]:
    """Yield regex matches from non-blank ``lines`` not starting with ``skip_prefixes``."""

    forbidden = tuple(skip_prefixes)
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        if forbidden and line.startswith(forbidden):
            continue
        match = pattern.match(line)
        if match:
            yield match


def _guard(transform: Callable[..., ParseOutcome], payload: Any, context: ParseContext) -> ParseOutcome:
    try:
        return transform(payload, context)
    except ParseError:
        raise
    except ValidationError as exc:
        raise ParseError(f"{context.spec.name}: invalid finding: {exc.errors()[0]['msg']}") from exc
    except _TRANSFORM_ERRORS as exc:
        raise ParseError(f"{context.spec.name}: unexpected output schema: {exc}") from exc


@dataclass(slots=True)
class JsonParser:
    """Parse output as JSON and delegate to a transform function."""

    transform: JsonTransform
    allow_empty: bool = True
    output_format: OutputFormat = OutputFormat.JSON

    def parse(self, stdout: str, stderr: str, *, context: ParseContext) -> ParseOutcome:
        payload = load_json_stream(context.select(stdout, stderr))
        if payload is None:
            if self.allow_empty:
                return ParseOutcome()
            raise ParseError(f"{context.spec.name}: expected JSON output but received nothing")
        return _guard(self.transform, payload, context)


@dataclass(slots=True)
class TextParser:
    """Parse output line by line via a transformation function."""

    transform: TextTransform
    stream: Stream = "stdout"
    output_format: OutputFormat = OutputFormat.TEXT

    def parse(self, stdout: str, stderr: str, *, context: ParseContext) -> ParseOutcome:
        lines = context.select(stdout, stderr, self.stream).splitlines()
        return _guard(self.transform, lines, context)


@dataclass(slots=True)
class XmlParser:
    """Parse output as an XML document and delegate to a transform function."""

    transform: XmlTransform
    output_format: OutputFormat = OutputFormat.XML

    def parse(self, stdout: str, stderr: str, *, context: ParseContext) -> ParseOutcome:
        text = context.select(stdout, stderr).strip()
        if not text:
            raise ParseError(f"{context.spec.name}: expected XML output but received nothing")
        try:
            root = ElementTree.fromstring(text)  # nosec B314
        except ElementTree.ParseError as exc:
            raise ParseError(f"{context.spec.name}: malformed XML output: {exc}") from exc
        return _guard(self.transform, root, context)


__all__ = [
    "JsonParser",
    "JsonTransform",
    "JsonValue",
    "ParseContext",
    "ParseError",
    "ParseOutcome",
    "Parser",
    "TextParser",
    "TextTransform",
    "XmlParser",
    "XmlTransform",
    "build_issue",
    "coerce_int",
    "expect_list",
    "expect_mapping",
    "iter_dicts",
    "iter_pattern_matches",
    "load_json_stream",
    "resolve_path",
]
