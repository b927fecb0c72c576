# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the sequential fix mode."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from helpers import FakeRunner, make_spec, which_all
from qgate.execution import FixResult, run_fixers
from qgate.execution.fixer import fixable
from qgate.models import RunStatus
from qgate.process_utils import CommandTimeoutError


def _specs():
    return [
        make_spec("ruff", fix_command=("ruff", "check", "--fix", "{targets}")),
        make_spec("mypy"),
        make_spec("black", fix_command=("black", "{targets}")),
        make_spec("isort", fix_command=("isort", "{targets}"), enabled=False),
    ]


def test_fixable_keeps_enabled_fixers_in_order() -> None:
    assert [spec.name for spec in fixable(_specs())] == ["ruff", "black"]


def test_fixers_run_one_after_another(project: Path) -> None:
    runner = FakeRunner()
    seen: list[FixResult] = []

    outcomes = run_fixers(
        ["b.py", "a.py"],
        _specs(),
        root=project,
        runner=runner,
        which=which_all,
        on_result=seen.append,
    )

    assert [call[0] for call in runner.calls] == [
        ["/usr/bin/ruff", "check", "--fix", "a.py", "b.py"],
        ["/usr/bin/black", "a.py", "b.py"],
    ]
    assert runner.calls[0][1]["cwd"] == project
    assert [outcome.status for outcome in outcomes] == [RunStatus.SUCCESS, RunStatus.SUCCESS]
    assert seen == outcomes
    assert outcomes[0].command == ("ruff", "check", "--fix", "a.py", "b.py")


def test_missing_fixer_is_reported(project: Path) -> None:
    runner = FakeRunner()

    outcomes = run_fixers(["a.py"], _specs(), root=project, runner=runner, which=lambda name: None)

    assert {outcome.status for outcome in outcomes} == {RunStatus.TOOL_NOT_FOUND}
    assert runner.calls == []


def test_failing_fixer_reports_stderr(project: Path) -> None:
    runner = FakeRunner(returncode=123, stderr="error: cannot format a.py\n")

    outcomes = run_fixers(["a.py"], _specs()[:1], root=project, runner=runner, which=which_all)

    (outcome,) = outcomes
    assert outcome.status is RunStatus.TOOL_FAILED
    assert outcome.returncode == 123
    assert outcome.error == "error: cannot format a.py"


def test_fixer_timeout(project: Path) -> None:
    def runner(cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise CommandTimeoutError(cmd, kwargs["timeout"], "", "")

    spec = make_spec("slow", fix_command=("slow", "{targets}"), timeout=2)

    (outcome,) = run_fixers(["a.py"], [spec], root=project, runner=runner, which=which_all)

    assert outcome.status is RunStatus.TIMEOUT
    assert outcome.error == "timed out after 2s"
