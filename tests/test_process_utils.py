# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for subprocess helpers."""

from __future__ import annotations

import subprocess
import sys
import time
from pathlib import Path

import pytest

from qgate.process_utils import (
    CommandTimeoutError,
    ProcessRegistry,
    find_executable,
    run_command,
    terminate_process_group,
)

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


def _spawn_sleeper() -> subprocess.Popen[str]:
    return subprocess.Popen(SLEEPER, text=True, start_new_session=True)


def test_run_command_captures_streams(tmp_path: Path) -> None:
    script = "import os, sys; print(os.getcwd()); print(os.environ['QGATE_PROBE'], file=sys.stderr); sys.exit(3)"

    completed = run_command([sys.executable, "-c", script], cwd=tmp_path, env={"QGATE_PROBE": "yes"})

    assert completed.returncode == 3
    assert Path(completed.stdout.strip()).resolve() == tmp_path.resolve()
    assert completed.stderr.strip() == "yes"


def test_run_command_requires_arguments() -> None:
    with pytest.raises(ValueError):
        run_command([])


def test_run_command_timeout_terminates_process() -> None:
    started = time.monotonic()

    with pytest.raises(CommandTimeoutError) as excinfo:
        run_command(SLEEPER, timeout=0.5)

    assert time.monotonic() - started < 10
    assert excinfo.value.timeout == 0.5
    assert excinfo.value.command[0] == sys.executable


def test_run_command_missing_executable() -> None:
    with pytest.raises(FileNotFoundError):
        run_command(["/nonexistent/qgate-tool"])


def test_find_executable() -> None:
    assert find_executable(sys.executable) == sys.executable
    assert find_executable("/nonexistent/qgate-tool") is None
    assert find_executable("qgate-no-such-tool-anywhere") is None


def test_registry_close_terminates_tracked_processes() -> None:
    registry = ProcessRegistry()
    process = _spawn_sleeper()
    registry.register(process)

    registry.close()

    assert process.wait(timeout=10) is not None
    assert registry.closed


def test_registry_rejects_processes_after_close() -> None:
    registry = ProcessRegistry()
    registry.close()
    process = _spawn_sleeper()

    registry.register(process)

    assert process.wait(timeout=10) is not None


def test_terminate_process_group_ignores_finished_process() -> None:
    process = subprocess.Popen([sys.executable, "-c", "pass"], text=True, start_new_session=True)
    process.wait(timeout=10)

    terminate_process_group(process)

    assert process.returncode == 0
