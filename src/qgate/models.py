# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the qgate package."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .severity import SEVERITY_ORDER, Severity, coerce_severity
from .taxonomy import RuleClass


class OutputFormat(str, Enum):
    """Native output formats a tool can produce."""

    TEXT = "text"
    JSON = "json"
    XML = "xml"


class ReportFormat(str, Enum):
    """Formats the report renderer can emit."""

    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"


class RunStatus(str, Enum):
    """Execution status of a single tool invocation."""

    SUCCESS = "SUCCESS"
    TOOL_FAILED = "TOOL_FAILED"
    TIMEOUT = "TIMEOUT"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    ERROR = "ERROR"


class Verdict(str, Enum):
    """Overall gate outcome, in ascending precedence."""

    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class ToolSpec(BaseModel):
    """Immutable description of one configured analysis tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: tuple[str, ...]
    output_format: OutputFormat = OutputFormat.TEXT
    parser: str
    enabled: bool = True
    timeout: float = Field(default=300.0, gt=0)
    severity_map: dict[str, Severity] = Field(default_factory=dict)
    default_severity: Severity = Severity.MEDIUM
    rule_class: RuleClass | None = None
    rule_classes: dict[str, RuleClass] = Field(default_factory=dict)
    success_exit_codes: tuple[int, ...] = (0,)
    issue_exit_codes: tuple[int, ...] = (1,)
    after: tuple[str, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)
    report_path: str | None = None
    pattern: str | None = None
    fix_command: tuple[str, ...] | None = None

    @field_validator("command")
    @classmethod
    def _require_executable(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or not value[0].strip():
            msg = "command must name an executable"
            raise ValueError(msg)
        return value

    @field_validator("severity_map", mode="before")
    @classmethod
    def _coerce_severity_map(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key).lower(): coerce_severity(sev) for key, sev in value.items()}
        return value

    @field_validator("default_severity", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> Any:
        if isinstance(value, str):
            return coerce_severity(value)
        return value

    @property
    def executable(self) -> str:
        """Return the executable named by the invocation template."""

        return self.command[0]

    @property
    def accepted_exit_codes(self) -> frozenset[int]:
        """Return exit codes meaning the tool ran to completion."""

        return frozenset(self.success_exit_codes) | frozenset(self.issue_exit_codes)

    def map_severity(self, label: str | None) -> Severity:
        """Translate a tool-native severity label or rule id into a tier.

        Labels are matched case-insensitively, first exactly and then by the
        longest configured prefix, so ``{"e": HIGH}`` covers ``E501``.

        Args:
            label: Native label such as ``"error"`` or a rule identifier.

        Returns:
            Severity: Mapped tier, or :attr:`default_severity` when unmapped.
        """

        if not label:
            return self.default_severity
        key = label.strip().lower()
        exact = self.severity_map.get(key)
        if exact is not None:
            return exact
        prefixes = [prefix for prefix in self.severity_map if prefix and key.startswith(prefix)]
        if prefixes:
            return self.severity_map[max(prefixes, key=len)]
        return self.default_severity


class Issue(BaseModel):
    """One normalised finding produced by parsing a tool's output."""

    model_config = ConfigDict(frozen=True)

    tool: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    severity: Severity
    rule: str = ""
    message: str
    rule_class: RuleClass = RuleClass.STYLE
    payload: Any = None

    @field_validator("file")
    @classmethod
    def _require_absolute(cls, value: str | None) -> str | None:
        if value is not None and not Path(value).is_absolute():
            msg = f"issue path must be absolute, got '{value}'"
            raise ValueError(msg)
        return value

    def dedup_key(self) -> tuple[str, int, str]:
        """Return the ``(file, line, rule class)`` key used to collapse duplicates."""

        return (self.file or "", self.line if self.line is not None else -1, self.rule_class.value)


class MergedIssue(Issue):
    """Deduplicated issue retaining every contributing tool and raw payload."""

    tools: tuple[str, ...] = ()
    payloads: tuple[Any, ...] = ()


class RunMetrics(BaseModel):
    """Project-level percentages reported by coverage and duplication tools."""

    model_config = ConfigDict(frozen=True)

    coverage: float | None = Field(default=None, ge=0, le=100)
    duplication: float | None = Field(default=None, ge=0, le=100)

    def is_empty(self) -> bool:
        """Return ``True`` when neither metric was reported."""

        return self.coverage is None and self.duplication is None


class RunResult(BaseModel):
    """Outcome of invoking a single tool adapter."""

    model_config = ConfigDict(frozen=True)

    spec: ToolSpec
    status: RunStatus
    issues: tuple[Issue, ...] = ()
    duration: float = 0.0
    returncode: int | None = None
    command: tuple[str, ...] = ()
    stdout: str = ""
    stderr: str = ""
    metrics: RunMetrics = Field(default_factory=RunMetrics)
    error: str | None = None

    @model_validator(mode="after")
    def _discard_untrusted_output(self) -> RunResult:
        if self.status is not RunStatus.SUCCESS and (self.issues or not self.metrics.is_empty()):
            msg = f"{self.status.value} results must not carry issues or metrics"
            raise ValueError(msg)
        foreign = {issue.tool for issue in self.issues} - {self.spec.name}
        if foreign:
            msg = f"issues from {sorted(foreign)} do not belong to tool '{self.spec.name}'"
            raise ValueError(msg)
        return self

    @property
    def tool(self) -> str:
        """Return the name of the tool that produced this result."""

        return self.spec.name


def empty_summary() -> dict[Severity, int]:
    """Return a per-tier counter with every severity present."""

    return {severity: 0 for severity in SEVERITY_ORDER}


class AggregatedReport(BaseModel):
    """Merged view over every tool's result for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    results: dict[str, RunResult] = Field(default_factory=dict)
    order: tuple[str, ...] = ()
    issues: tuple[MergedIssue, ...] = ()
    summary: dict[Severity, int] = Field(default_factory=empty_summary)
    coverage: float | None = None
    duplication: float | None = None
    verdict: Verdict | None = None
    reasons: tuple[str, ...] = ()

    def ordered_results(self) -> list[RunResult]:
        """Return results in display order, unknown names last and sorted."""

        seen = [name for name in self.order if name in self.results]
        rest = sorted(name for name in self.results if name not in set(seen))
        return [self.results[name] for name in (*seen, *rest)]

    def without_timings(self) -> AggregatedReport:
        """Return a copy with wall-clock fields zeroed for comparisons."""

        results = {
            name: result.model_copy(update={"duration": 0.0})
            for name, result in self.results.items()
        }
        return self.model_copy(update={"results": results})


__all__ = [
    "AggregatedReport",
    "Issue",
    "MergedIssue",
    "OutputFormat",
    "ReportFormat",
    "RunMetrics",
    "RunResult",
    "RunStatus",
    "ToolSpec",
    "Verdict",
    "empty_summary",
]
