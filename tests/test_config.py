# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from qgate.config import ConfigError, GateConfig, build_config, find_config, load_config
from qgate.models import OutputFormat, ReportFormat
from qgate.severity import Severity
from qgate.taxonomy import RuleClass


def _custom(**overrides):
    entry = {"name": "custom", "command": ["custom-lint", "{targets}"], "parser": "flake8"}
    entry.update(overrides)
    return entry


def test_preset_entries_expand_to_full_specs() -> None:
    config = build_config({"tools": [{"preset": "ruff"}, {"preset": "mypy", "timeout": 60}]})

    ruff, mypy = config.tools
    assert ruff.name == "ruff"
    assert ruff.output_format is OutputFormat.JSON
    assert ruff.fix_command is not None
    assert mypy.timeout == 60
    assert mypy.rule_class is RuleClass.TYPE_ERROR


def test_args_are_inserted_before_targets() -> None:
    config = build_config({"tools": [{"preset": "flake8", "args": ["--max-line-length", "100"]}]})

    assert config.tool("flake8").command == ("flake8", "--max-line-length", "100", "{targets}")


def test_string_commands_are_split() -> None:
    entry = _custom(command="custom-lint --strict {targets}", fix_command="custom-fix {targets}")
    config = build_config({"tools": [entry]})

    spec = config.tool("custom")
    assert spec.command == ("custom-lint", "--strict", "{targets}")
    assert spec.fix_command == ("custom-fix", "{targets}")
    assert spec.output_format is OutputFormat.TEXT


def test_severity_overrides_are_coerced() -> None:
    config = build_config({"tools": [_custom(severity_map={"E": "high"}, default_severity="info")]})

    spec = config.tool("custom")
    assert spec.map_severity("E101") is Severity.HIGH
    assert spec.map_severity("W1") is Severity.INFO


def test_gate_section() -> None:
    config = build_config(
        {
            "tools": [_custom(), _custom(name="other")],
            "gate": {"max_issues": {"high": 0, "Medium": 5}, "min_coverage": 80, "advisory_tools": ["other"]},
            "pipeline": {"jobs": 2, "run_timeout": 600},
            "output": {"format": "sarif", "top_issues": 5},
        },
    )

    assert config.gate.max_issues == {Severity.HIGH: 0, Severity.MEDIUM: 5}
    assert config.gate.is_fatal("custom")
    assert not config.gate.is_fatal("other")
    assert config.pipeline.jobs == 2
    assert config.output.format is ReportFormat.SARIF


def test_disabled_tools_are_kept_but_not_enabled() -> None:
    config = build_config({"tools": [_custom(), _custom(name="off", enabled=False)]})

    assert [spec.name for spec in config.tools] == ["custom", "off"]
    assert [spec.name for spec in config.enabled_tools] == ["custom"]


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ({"tools": []}, "declares no tools"),
        ({"tools": [_custom(), _custom()]}, "duplicate tool names: custom"),
        ({"tools": [{"preset": "eslint"}]}, "unknown preset 'eslint'"),
        ({"tools": [{"name": "x", "parser": "flake8"}]}, "needs a 'command'"),
        ({"tools": [{"command": ["x"], "parser": "flake8"}]}, "needs a 'name'"),
        ({"tools": [_custom(parser="nope")]}, "unknown parser 'nope'"),
        ({"tools": [_custom(output_format="json")]}, "reads text output, not json"),
        ({"tools": [_custom(command=["lint", "--files={targets}"])]}, "standalone argument"),
        ({"tools": [_custom(command=["lint", "{target}"])]}, "unknown placeholder"),
        ({"tools": [_custom(after=["ghost"])]}, "unknown tool(s) ghost"),
        ({"tools": [_custom(after=["custom"])]}, "cannot run after itself"),
        ({"tools": [_custom(timeout=0)]}, "timeout"),
        ({"tools": [_custom(colour=True)]}, "colour"),
        ({"tools": [_custom(parser="regex")]}, "requires a 'pattern'"),
        ({"tools": [_custom(parser="regex", pattern="(")]}, "invalid pattern"),
        ({"tools": [_custom(parser="regex", pattern="(?P<text>.*)")]}, "(?P<message>...)"),
        ({"tools": [_custom()], "gate": {"max_issues": {"HIGH": -1}}}, "non-negative"),
        ({"tools": [_custom()], "gate": {"max_issues": {"BLOCKER": 1}}}, "unknown severity"),
        ({"tools": [_custom()], "gate": {"fatal_tools": ["ghost"]}}, "unknown tool(s) ghost"),
        ({"tools": [_custom()], "gate": {"fatal_tools": ["custom"], "advisory_tools": ["custom"]}}, "both fatal"),
        ({"tools": [_custom()], "pipeline": {"jobs": 0}}, "jobs"),
        ({"tools": [_custom()], "extra": 1}, "extra"),
    ],
)
def test_invalid_documents(document, message: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        build_config(document)
    assert message in str(excinfo.value)


def test_cycles_are_rejected() -> None:
    document = {"tools": [_custom(name="a", after=["b"]), _custom(name="b", after=["a"])]}

    with pytest.raises(ConfigError, match="cycle"):
        build_config(document)


def test_gate_config_is_immutable() -> None:
    gate = GateConfig()
    with pytest.raises(ValidationError):
        gate.min_coverage = 10  # type: ignore[misc]


def test_load_config_discovers_qgate_toml(tmp_path: Path) -> None:
    (tmp_path / "qgate.toml").write_text(
        dedent(
            """
            [gate.max_issues]
            HIGH = 0

            [[tools]]
            preset = "ruff"
            """,
        ),
        encoding="utf-8",
    )

    config = load_config(root=tmp_path)

    assert config.source == tmp_path / "qgate.toml"
    assert config.tool("ruff").parser == "ruff"
    assert config.gate.limit(Severity.HIGH) == 0


def test_load_config_reads_pyproject_section(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        dedent(
            """
            [project]
            name = "demo"

            [[tool.qgate.tools]]
            preset = "black"
            """,
        ),
        encoding="utf-8",
    )

    assert find_config(tmp_path) == tmp_path / "pyproject.toml"
    assert load_config(root=tmp_path).tool("black").fix_command is not None


def test_pyproject_without_section_is_not_discovered(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'demo'\n", encoding="utf-8")

    assert find_config(tmp_path) is None
    with pytest.raises(ConfigError, match="no configuration found"):
        load_config(root=tmp_path)


def test_explicit_pyproject_without_section_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "pyproject.toml"
    path.write_text("[project]\nname = 'demo'\n", encoding="utf-8")

    with pytest.raises(ConfigError, match=r"no \[tool.qgate\] table"):
        load_config(path)


def test_invalid_toml_is_reported_with_path(tmp_path: Path) -> None:
    path = tmp_path / "qgate.toml"
    path.write_text("[[tools]\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="not valid TOML"):
        load_config(path)


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        load_config(tmp_path / "absent.toml")


def test_validation_errors_name_the_file(tmp_path: Path) -> None:
    path = tmp_path / ".qgate.toml"
    path.write_text("tools = []\n", encoding="utf-8")

    with pytest.raises(ConfigError) as excinfo:
        load_config(root=tmp_path)
    assert str(excinfo.value).startswith(str(path))


def test_parser_override_takes_its_native_format() -> None:
    config = build_config({"tools": [{"preset": "mypy", "command": ["mypy", "{targets}"], "parser": "mypy-text"}]})

    spec = config.tool("mypy")
    assert spec.parser == "mypy-text"
    assert spec.output_format is OutputFormat.TEXT
    assert spec.severity_map["error"] is Severity.HIGH
