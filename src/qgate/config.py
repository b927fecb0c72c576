# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and loading for the qgate orchestrator."""

from __future__ import annotations

import re
import shlex
import tomllib
from collections.abc import Mapping, Sequence
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .models import OutputFormat, ReportFormat, ToolSpec
from .parsers import PARSERS, get_parser
from .severity import Severity, coerce_severity, severities_at_or_above
from .taxonomy import RuleClass
from .tools.adapter import PLACEHOLDERS
from .tools.presets import PRESETS

CONFIG_FILENAMES: Final[tuple[str, ...]] = ("qgate.toml", ".qgate.toml")
PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "qgate"
_TARGETS: Final[str] = "{targets}"


class ConfigError(Exception):
    """Raised when configuration input is invalid."""


class PipelineConfig(BaseModel):
    """Scheduling limits for one pipeline run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    jobs: int | None = Field(default=None, ge=1)
    run_timeout: float | None = Field(default=None, gt=0)


class GateConfig(BaseModel):
    """User-supplied thresholds evaluated against the aggregated report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_issues: dict[Severity, int] = Field(default_factory=dict)
    min_coverage: float | None = Field(default=None, ge=0, le=100)
    max_duplication: float | None = Field(default=None, ge=0, le=100)
    fatal_tools: tuple[str, ...] | None = None
    advisory_tools: tuple[str, ...] = ()

    @field_validator("max_issues", mode="before")
    @classmethod
    def _coerce_tiers(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {coerce_severity(key): limit for key, limit in value.items()}
        return value

    @field_validator("max_issues")
    @classmethod
    def _non_negative(cls, value: dict[Severity, int]) -> dict[Severity, int]:
        negative = sorted(sev.value for sev, limit in value.items() if limit < 0)
        if negative:
            msg = f"max_issues must be non-negative (check {', '.join(negative)})"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _disjoint_policies(self) -> GateConfig:
        overlap = set(self.fatal_tools or ()) & set(self.advisory_tools)
        if overlap:
            msg = f"tools cannot be both fatal and advisory: {', '.join(sorted(overlap))}"
            raise ValueError(msg)
        return self

    def is_fatal(self, tool: str) -> bool:
        """Return ``True`` when a non-success status of ``tool`` forces ERROR.

        Every tool is fatal unless listed in ``advisory_tools`` or, when
        ``fatal_tools`` is given, absent from it.
        """

        if tool in self.advisory_tools:
            return False
        return self.fatal_tools is None or tool in self.fatal_tools

    def limit(self, severity: Severity) -> int | None:
        """Return the configured maximum for ``severity``, if any."""

        return self.max_issues.get(severity)

    def with_fail_on(self, threshold: Severity) -> GateConfig:
        """Return a copy allowing zero issues at ``threshold`` or above."""

        limits = dict(self.max_issues)
        for severity in severities_at_or_above(threshold):
            limits[severity] = 0
        return self.model_copy(update={"max_issues": limits})


class OutputConfig(BaseModel):
    """Presentation defaults for the rendered report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    format: ReportFormat = ReportFormat.TEXT
    top_issues: int = Field(default=20, ge=0)


class ToolEntry(BaseModel):
    """Raw ``[[tools]]`` table before it is merged with a preset."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    preset: str | None = None
    command: list[str] | str | None = None
    args: list[str] = Field(default_factory=list)
    output_format: OutputFormat | None = None
    parser: str | None = None
    enabled: bool | None = None
    timeout: float | None = None
    severity_map: dict[str, str] | None = None
    default_severity: str | None = None
    rule_class: RuleClass | None = None
    rule_classes: dict[str, RuleClass] | None = None
    success_exit_codes: list[int] | None = None
    issue_exit_codes: list[int] | None = None
    after: list[str] | None = None
    env: dict[str, str] | None = None
    report_path: str | None = None
    pattern: str | None = None
    fix_command: list[str] | str | None = None

    @field_validator("command", "fix_command", mode="after")
    @classmethod
    def _split_command(cls, value: list[str] | str | None) -> list[str] | None:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    def to_spec(self, index: int) -> ToolSpec:
        """Merge this entry over its preset and validate the result.

        Args:
            index: Position of the entry, used in error messages.

        Returns:
            ToolSpec: Immutable tool definition.

        Raises:
            ConfigError: If the entry is incomplete or invalid.
        """

        label = self.name or self.preset or f"tools[{index}]"
        base: dict[str, Any] = {}
        if self.preset is not None:
            preset = PRESETS.get(self.preset)
            if preset is None:
                known = ", ".join(sorted(PRESETS))
                raise ConfigError(f"{label}: unknown preset '{self.preset}' (known presets: {known})")
            base = preset.model_dump()
        overrides = self.model_dump(exclude_unset=True, exclude={"name", "preset", "args"})
        merged = {**base, **{key: value for key, value in overrides.items() if value is not None}}
        merged["name"] = self.name or self.preset
        if not merged.get("name"):
            raise ConfigError(f"tools[{index}]: a tool needs a 'name' or a 'preset'")
        if "command" not in merged:
            raise ConfigError(f"{label}: a tool needs a 'command' or a 'preset'")
        if "parser" not in merged:
            raise ConfigError(f"{label}: a tool needs a 'parser' or a 'preset'")
        if self.args:
            merged["command"] = _insert_args(merged["command"], self.args)
        try:
            parser = get_parser(merged["parser"])
        except KeyError as exc:
            raise ConfigError(f"{label}: {exc.args[0]}") from exc
        # An overridden parser brings its own native format.
        if overrides.get("output_format") is None and ("parser" in overrides or "output_format" not in merged):
            merged["output_format"] = parser.output_format
        try:
            return ToolSpec(**merged)
        except ValidationError as exc:
            raise ConfigError(f"{label}: {_describe_validation(exc)}") from exc


def _insert_args(command: Sequence[str], args: Sequence[str]) -> list[str]:
    tokens = list(command)
    if _TARGETS in tokens:
        position = tokens.index(_TARGETS)
        return [*tokens[:position], *args, *tokens[position:]]
    return [*tokens, *args]


class QGateConfig(BaseModel):
    """Fully validated configuration for one invocation."""

    model_config = ConfigDict(frozen=True)

    tools: tuple[ToolSpec, ...]
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    source: Path | None = None

    @property
    def enabled_tools(self) -> tuple[ToolSpec, ...]:
        """Return tools that participate in a run."""

        return tuple(spec for spec in self.tools if spec.enabled)

    def tool(self, name: str) -> ToolSpec:
        """Return the tool called ``name``."""

        for spec in self.tools:
            if spec.name == name:
                return spec
        raise KeyError(name)


class _RawConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    tools: list[ToolEntry] = Field(default_factory=list)


def _describe_validation(exc: ValidationError) -> str:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "value"
        details.append(f"{location}: {error['msg']}")
    return "; ".join(details)


def build_config(document: Mapping[str, Any], *, source: Path | None = None) -> QGateConfig:
    """Validate a decoded configuration document.

    Args:
        document: Mapping decoded from TOML (or built in code).
        source: File the document came from, for reporting.

    Returns:
        QGateConfig: Validated configuration.

    Raises:
        ConfigError: If any part of the document is invalid.
    """

    try:
        raw = _RawConfig.model_validate(dict(document))
    except ValidationError as exc:
        raise ConfigError(_describe_validation(exc)) from exc
    tools = tuple(entry.to_spec(index) for index, entry in enumerate(raw.tools))
    _validate_tools(tools)
    _validate_gate(raw.gate, tools)
    return QGateConfig(tools=tools, pipeline=raw.pipeline, gate=raw.gate, output=raw.output, source=source)


def _validate_tools(tools: Sequence[ToolSpec]) -> None:
    if not tools:
        raise ConfigError("configuration declares no tools")
    names = [spec.name for spec in tools]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"duplicate tool names: {', '.join(duplicates)}")
    known = set(names)
    for spec in tools:
        parser = PARSERS[spec.parser]
        if parser.output_format is not spec.output_format:
            raise ConfigError(
                f"{spec.name}: parser '{spec.parser}' reads {parser.output_format.value} output, "
                f"not {spec.output_format.value}",
            )
        for command in (spec.command, spec.fix_command or ()):
            embedded = [token for token in command if _TARGETS in token and token != _TARGETS]
            if embedded:
                raise ConfigError(f"{spec.name}: '{_TARGETS}' must be a standalone argument, got '{embedded[0]}'")
        unknown_placeholders = {
            match for token in spec.command for match in re.findall(r"\{[a-z]+\}", token)
        } - PLACEHOLDERS
        if unknown_placeholders:
            raise ConfigError(f"{spec.name}: unknown placeholder(s) {', '.join(sorted(unknown_placeholders))}")
        missing = [dep for dep in spec.after if dep not in known]
        if missing:
            raise ConfigError(f"{spec.name}: 'after' references unknown tool(s) {', '.join(missing)}")
        if spec.name in spec.after:
            raise ConfigError(f"{spec.name}: a tool cannot run after itself")
        _validate_pattern(spec)
    try:
        TopologicalSorter({spec.name: spec.after for spec in tools}).prepare()
    except CycleError as exc:
        cycle = " -> ".join(exc.args[1])
        raise ConfigError(f"tool ordering contains a cycle: {cycle}") from exc


def _validate_pattern(spec: ToolSpec) -> None:
    if spec.parser != "regex":
        return
    if not spec.pattern:
        raise ConfigError(f"{spec.name}: the regex parser requires a 'pattern'")
    try:
        compiled = re.compile(spec.pattern)
    except re.error as exc:
        raise ConfigError(f"{spec.name}: invalid pattern: {exc}") from exc
    if "message" not in compiled.groupindex:
        raise ConfigError(f"{spec.name}: pattern must define a (?P<message>...) group")


def _validate_gate(gate: GateConfig, tools: Sequence[ToolSpec]) -> None:
    known = {spec.name for spec in tools}
    referenced = [*(gate.fatal_tools or ()), *gate.advisory_tools]
    unknown = sorted({name for name in referenced if name not in known})
    if unknown:
        raise ConfigError(f"gate references unknown tool(s) {', '.join(unknown)}")


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"configuration file {path} does not exist") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"configuration file {path} is not valid TOML: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"configuration file {path} is unreadable: {exc.strerror or exc}") from exc


def _pyproject_section(document: Mapping[str, Any]) -> Mapping[str, Any] | None:
    tool_section = document.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return None
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    return section if isinstance(section, Mapping) else None


def find_config(root: Path) -> Path | None:
    """Return the first configuration file found directly under ``root``.

    ``qgate.toml`` and ``.qgate.toml`` are preferred; ``pyproject.toml`` is
    used only when it carries a ``[tool.qgate]`` table.
    """

    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.is_file() and _pyproject_section(_read_toml(pyproject)) is not None:
        return pyproject
    return None


def load_config(path: Path | None = None, *, root: Path | None = None) -> QGateConfig:
    """Load and validate configuration eagerly.

    Args:
        path: Explicit configuration file; discovered under ``root`` when omitted.
        root: Directory searched when ``path`` is omitted (default: cwd).

    Returns:
        QGateConfig: Validated configuration.

    Raises:
        ConfigError: If no configuration exists or it is invalid.
    """

    if path is None:
        search_root = root or Path.cwd()
        path = find_config(search_root)
        if path is None:
            names = ", ".join((*CONFIG_FILENAMES, f"{PYPROJECT_FILENAME} [tool.qgate]"))
            raise ConfigError(f"no configuration found in {search_root} (looked for {names})")
    document = _read_toml(path)
    if path.name == PYPROJECT_FILENAME:
        section = _pyproject_section(document)
        if section is None:
            raise ConfigError(f"{path} has no [tool.qgate] table")
        document = dict(section)
    try:
        return build_config(document, source=path)
    except ConfigError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


__all__ = [
    "CONFIG_FILENAMES",
    "ConfigError",
    "GateConfig",
    "OutputConfig",
    "PipelineConfig",
    "QGateConfig",
    "ToolEntry",
    "build_config",
    "find_config",
    "load_config",
]
