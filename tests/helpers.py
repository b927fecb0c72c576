# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Builders and doubles shared by the test modules."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from typing import Any

from qgate.models import Issue, OutputFormat, RunResult, RunStatus, ToolSpec
from qgate.severity import Severity
from qgate.taxonomy import RuleClass


class FakeRunner:
    """Runner double returning canned process results and recording calls."""

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[tuple[list[str], dict[str, Any]]] = []

    def __call__(self, cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append((list(cmd), kwargs))
        return subprocess.CompletedProcess(list(cmd), self.returncode, self.stdout, self.stderr)


def which_all(name: str) -> str | None:
    """Executable lookup that pretends every tool is installed."""

    return f"/usr/bin/{name}"


def make_spec(name: str = "demo", **overrides: Any) -> ToolSpec:
    """Return a small :class:`ToolSpec` suitable for unit tests."""

    fields: dict[str, Any] = {
        "name": name,
        "command": (name, "{targets}"),
        "output_format": OutputFormat.TEXT,
        "parser": "flake8",
    }
    fields.update(overrides)
    return ToolSpec(**fields)


def make_issue(tool: str = "demo", **overrides: Any) -> Issue:
    """Return an :class:`Issue` with sensible defaults."""

    fields: dict[str, Any] = {
        "tool": tool,
        "file": "/repo/pkg/mod.py",
        "line": 1,
        "severity": Severity.MEDIUM,
        "rule": "X100",
        "message": "something is off",
        "rule_class": RuleClass.STYLE,
    }
    fields.update(overrides)
    return Issue(**fields)


def make_result(spec: ToolSpec, *issues: Issue, status: RunStatus = RunStatus.SUCCESS, **overrides: Any) -> RunResult:
    """Return a :class:`RunResult` for ``spec`` carrying ``issues``."""

    return RunResult(spec=spec, status=status, issues=issues, **overrides)
