# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in tool definitions for well-known Python analysers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from ..models import OutputFormat, ToolSpec
from ..severity import Severity
from ..taxonomy import RuleClass

TARGETS: Final[str] = "{targets}"

_BLACK = ToolSpec(
    name="black",
    command=("black", "--check", TARGETS),
    parser="black",
    default_severity=Severity.LOW,
    rule_class=RuleClass.STYLE,
    # 123 signals an internal error.
    issue_exit_codes=(1,),
    fix_command=("black", "--quiet", TARGETS),
)

_ISORT = ToolSpec(
    name="isort",
    command=("isort", "--check-only", TARGETS),
    parser="isort",
    default_severity=Severity.LOW,
    rule_class=RuleClass.STYLE,
    fix_command=("isort", "--quiet", TARGETS),
)

_FLAKE8 = ToolSpec(
    name="flake8",
    command=("flake8", TARGETS),
    parser="flake8",
    severity_map={"e9": Severity.HIGH, "f82": Severity.HIGH, "f": Severity.MEDIUM, "c9": Severity.MEDIUM},
    default_severity=Severity.LOW,
    rule_class=RuleClass.STYLE,
)

_MYPY = ToolSpec(
    name="mypy",
    command=("mypy", "--output", "json", TARGETS),
    output_format=OutputFormat.JSON,
    parser="mypy",
    severity_map={"error": Severity.HIGH, "warning": Severity.MEDIUM, "note": Severity.INFO},
    default_severity=Severity.HIGH,
    rule_class=RuleClass.TYPE_ERROR,
    # 2 means mypy itself failed (bad flags, crash).
    issue_exit_codes=(1,),
)

_BANDIT = ToolSpec(
    name="bandit",
    command=("bandit", "--format", "json", "--quiet", "--recursive", TARGETS),
    output_format=OutputFormat.JSON,
    parser="bandit",
    severity_map={"low": Severity.LOW, "medium": Severity.MEDIUM, "high": Severity.HIGH},
    default_severity=Severity.MEDIUM,
    rule_class=RuleClass.SECURITY,
)

_RUFF = ToolSpec(
    name="ruff",
    command=("ruff", "check", "--output-format", "json", "--no-fix", TARGETS),
    output_format=OutputFormat.JSON,
    parser="ruff",
    severity_map={
        "syntax-error": Severity.CRITICAL,
        "e9": Severity.HIGH,
        "f82": Severity.HIGH,
        "s": Severity.HIGH,
        "f": Severity.MEDIUM,
        "c90": Severity.MEDIUM,
        "plr09": Severity.MEDIUM,
    },
    default_severity=Severity.LOW,
    rule_class=RuleClass.STYLE,
    fix_command=("ruff", "check", "--fix", "--quiet", TARGETS),
)

_PYLINT = ToolSpec(
    name="pylint",
    command=("pylint", "--output-format=json", TARGETS),
    output_format=OutputFormat.JSON,
    parser="pylint",
    severity_map={
        "fatal": Severity.CRITICAL,
        "error": Severity.HIGH,
        "warning": Severity.MEDIUM,
        "refactor": Severity.LOW,
        "convention": Severity.LOW,
        "info": Severity.INFO,
    },
    default_severity=Severity.LOW,
    rule_class=RuleClass.STYLE,
    # Bit-encoded message categories; 32 is a usage error.
    issue_exit_codes=tuple(range(1, 32)),
)

_JSCPD = ToolSpec(
    name="jscpd",
    command=("jscpd", "--silent", "--reporters", "json", "--output", "{tmpdir}", TARGETS),
    output_format=OutputFormat.JSON,
    parser="jscpd",
    default_severity=Severity.LOW,
    rule_class=RuleClass.DUPLICATION,
    report_path="{tmpdir}/jscpd-report.json",
)

_COVERAGE = ToolSpec(
    name="coverage",
    command=("coverage", "xml", "-o", "{tmpdir}/coverage.xml"),
    output_format=OutputFormat.XML,
    parser="cobertura",
    rule_class=RuleClass.STYLE,
    # Exit 1 means there was no coverage data to report.
    issue_exit_codes=(),
    report_path="{tmpdir}/coverage.xml",
)

PRESETS: Final[Mapping[str, ToolSpec]] = {
    spec.name: spec for spec in (_BLACK, _ISORT, _FLAKE8, _MYPY, _BANDIT, _RUFF, _PYLINT, _JSCPD, _COVERAGE)
}


def get_preset(name: str) -> ToolSpec:
    """Return the built-in definition for ``name``.

    Raises:
        KeyError: If no preset exists for ``name``.
    """

    try:
        return PRESETS[name]
    except KeyError:
        known = ", ".join(sorted(PRESETS))
        raise KeyError(f"unknown preset '{name}' (known presets: {known})") from None


__all__ = ["PRESETS", "TARGETS", "get_preset"]
