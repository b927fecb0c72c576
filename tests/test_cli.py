# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""End-to-end tests for the ``qgate`` command line."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from textwrap import dedent

from typer.testing import CliRunner

from qgate import __version__
from qgate.cli import app

PYTHON = sys.executable
PATTERN = r"^(?P<file>[^:]+):(?P<line>\d+): (?P<severity>\w+) (?P<message>.+)$"

runner = CliRunner()


def _tool(name: str, output: str, *, fix: str | None = None) -> str:
    lines = [
        "[[tools]]",
        f'name = "{name}"',
        f"command = ['{PYTHON}', '-c', \"print('{output}')\"]",
        'parser = "regex"',
        f"pattern = '{PATTERN}'",
        'severity_map = { high = "HIGH", medium = "MEDIUM" }',
    ]
    if fix is not None:
        lines.append(f"fix_command = ['{PYTHON}', '-c', '{fix}']")
    return "\n".join(lines) + "\n"


def _write_config(root: Path, *tables: str) -> Path:
    path = root / "qgate.toml"
    path.write_text("\n".join(tables), encoding="utf-8")
    return path


def _run(root: Path, *args: str):
    return runner.invoke(app, ["run", "--root", str(root), "--no-emoji", "--no-color", *args])


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_clean_run_passes(project: Path) -> None:
    _write_config(project, _tool("lint", "all good"))

    result = _run(project)

    assert result.exit_code == 0
    assert "Verdict: PASS" in result.output


def test_threshold_violation_fails(project: Path) -> None:
    _write_config(project, "[gate.max_issues]\nHIGH = 0\n", _tool("lint", "pkg/mod.py:1: high something broke"))
    report = project / "report.json"

    result = _run(project, "--format", "json", "--output", str(report))

    assert result.exit_code == 1
    document = json.loads(report.read_text(encoding="utf-8"))
    assert document["verdict"] == "FAIL"
    assert document["summary"]["HIGH"] == 1
    (issue,) = document["issues"]
    assert issue["file"] == str((project / "pkg" / "mod.py").resolve())
    assert issue["message"] == "something broke"


def test_fail_on_overrides_gate(project: Path) -> None:
    _write_config(project, _tool("lint", "pkg/mod.py:1: medium minor thing"))

    assert _run(project, "--fail-on", "medium").exit_code == 1
    assert _run(project, "--fail-on", "high").exit_code == 0


def test_missing_fatal_tool_is_error(project: Path) -> None:
    _write_config(
        project,
        _tool("lint", "all good"),
        '[[tools]]\nname = "ghost"\ncommand = ["qgate-no-such-tool-anywhere", "{targets}"]\nparser = "flake8"\n',
    )
    report = project / "report.json"

    result = _run(project, "-f", "json", "-o", str(report))

    assert result.exit_code == 2
    document = json.loads(report.read_text(encoding="utf-8"))
    assert document["verdict"] == "ERROR"
    statuses = {tool["name"]: tool["status"] for tool in document["tools"]}
    assert statuses == {"lint": "SUCCESS", "ghost": "TOOL_NOT_FOUND"}


def test_advisory_missing_tool_does_not_block(project: Path) -> None:
    _write_config(
        project,
        '[gate]\nadvisory_tools = ["ghost"]\n',
        _tool("lint", "all good"),
        '[[tools]]\nname = "ghost"\ncommand = ["qgate-no-such-tool-anywhere"]\nparser = "flake8"\n',
    )

    assert _run(project).exit_code == 0


def test_configuration_error_exits_two(project: Path) -> None:
    _write_config(project, "tools = []\n")

    result = _run(project)

    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_missing_configuration_exits_two(tmp_path: Path) -> None:
    assert _run(tmp_path).exit_code == 2


def test_explicit_paths_are_validated(project: Path) -> None:
    _write_config(project, _tool("lint", "all good"))

    result = _run(project, str(project / "does-not-exist.py"))

    assert result.exit_code == 2


def test_sarif_output(project: Path) -> None:
    _write_config(project, _tool("lint", "pkg/mod.py:2: medium minor thing"))
    report = project / "report.sarif"

    result = _run(project, "--format", "sarif", "--output", str(report))

    assert result.exit_code == 0
    log = json.loads(report.read_text(encoding="utf-8"))
    assert log["runs"][0]["tool"]["driver"]["name"] == "lint"
    assert log["runs"][0]["results"][0]["level"] == "warning"


def test_tools_command_lists_configuration(project: Path) -> None:
    _write_config(project, _tool("lint", "all good", fix="pass"))

    result = runner.invoke(app, ["tools", "--root", str(project), "--no-emoji", "--no-color"])

    assert result.exit_code == 0
    assert "lint" in result.output


def test_fix_command_success(project: Path) -> None:
    _write_config(project, _tool("lint", "all good", fix="pass"))

    result = runner.invoke(app, ["fix", "--root", str(project), "--no-emoji", "--no-color"])

    assert result.exit_code == 0
    assert "lint: fixed" in result.output


def test_fix_command_failure_exits_two(project: Path) -> None:
    _write_config(project, _tool("lint", "all good", fix="raise SystemExit(7)"))

    result = runner.invoke(app, ["fix", "--root", str(project), "--no-emoji", "--no-color"])

    assert result.exit_code == 2


def test_unwritable_output_is_error(project: Path) -> None:
    _write_config(project, _tool("lint", "all good"))

    result = _run(project, "--output", str(project / "missing-dir" / "report.json"))

    assert result.exit_code == 2
    assert "Could not write report" in result.output
