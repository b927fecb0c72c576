# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared services."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..aggregate import aggregate
from ..config import ConfigError, QGateConfig, load_config
from ..execution import PipelineHooks, PipelineRunner, run_fixers
from ..gate import EXIT_CODES, finalize
from ..logging import configure_logging
from ..models import ReportFormat, RunStatus, Verdict
from ..process_utils import ProcessRegistry, find_executable, run_command
from ..reporting import render
from ..severity import Severity
from ..tools import CommandAdapter
from .shared import (
    COLOR_OPTION,
    CONFIG_OPTION,
    EMOJI_OPTION,
    PATHS_ARGUMENT,
    ROOT_OPTION,
    VERBOSE_OPTION,
    CLILogger,
    build_cli_logger,
    resolve_targets,
)

ERROR_EXIT_CODE = EXIT_CODES[Verdict.ERROR]

app = typer.Typer(
    name="qgate",
    help="Local quality-gate orchestrator for static-analysis tools.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"qgate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = False,
) -> None:
    """Run static-analysis tools and enforce a quality gate."""


def _load(config: Path | None, root: Path, logger: CLILogger) -> QGateConfig:
    try:
        return load_config(config, root=root)
    except ConfigError as exc:
        logger.fail(f"Configuration error: {exc}")
        raise typer.Exit(code=ERROR_EXIT_CODE) from exc


@app.command("run")
def run(
    paths: PATHS_ARGUMENT = None,
    config: CONFIG_OPTION = None,
    root: ROOT_OPTION = Path("."),
    fail_on: Annotated[
        Severity | None,
        typer.Option("--fail-on", case_sensitive=False, help="Fail on any issue at or above this severity."),
    ] = None,
    output_format: Annotated[
        ReportFormat | None,
        typer.Option("--format", "-f", case_sensitive=False, help="Report format (default from config: text)."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", dir_okay=False, help="Write the report to a file instead of stdout."),
    ] = None,
    jobs: Annotated[int | None, typer.Option("--jobs", "-j", min=1, help="Maximum concurrent tools.")] = None,
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
    color: COLOR_OPTION = True,
) -> None:
    """Run every enabled tool, evaluate the gate and exit 0 (PASS), 1 (FAIL) or 2 (ERROR)."""

    configure_logging(verbose)
    logger = build_cli_logger(emoji=emoji, color=color)
    project_root = root.resolve()
    cfg = _load(config, project_root, logger)
    targets = resolve_targets(paths, project_root)

    gate = cfg.gate.with_fail_on(fail_on) if fail_on is not None else cfg.gate
    registry = ProcessRegistry()
    runner = PipelineRunner(
        CommandAdapter(root=project_root, registry=registry),
        jobs=jobs or cfg.pipeline.jobs,
        run_timeout=cfg.pipeline.run_timeout,
        hooks=PipelineHooks(after_tool=logger.tool_finished),
        registry=registry,
    )
    results = runner.execute(targets, cfg.tools)
    report = finalize(aggregate(results, order=[spec.name for spec in cfg.enabled_tools]), gate)

    fmt = output_format or cfg.output.format
    use_color = color and output is None and fmt is ReportFormat.TEXT and sys.stdout.isatty()
    document = render(report, fmt, top=cfg.output.top_issues, root=project_root, color=use_color)
    if output is not None:
        try:
            output.write_text(document, encoding="utf-8")
        except OSError as exc:
            logger.fail(f"Could not write report to {output}: {exc.strerror or exc}")
            raise typer.Exit(code=ERROR_EXIT_CODE) from exc
        logger.info(f"Report written to {output}")
    else:
        typer.echo(document, nl=False)

    verdict = report.verdict or Verdict.ERROR
    if verdict is Verdict.PASS:
        logger.ok("Quality gate passed")
    elif verdict is Verdict.FAIL:
        logger.fail("Quality gate failed")
    else:
        logger.fail("Quality gate could not be evaluated")
    raise typer.Exit(code=EXIT_CODES[verdict])


@app.command("fix")
def fix(
    paths: PATHS_ARGUMENT = None,
    config: CONFIG_OPTION = None,
    root: ROOT_OPTION = Path("."),
    verbose: VERBOSE_OPTION = False,
    emoji: EMOJI_OPTION = True,
    color: COLOR_OPTION = True,
) -> None:
    """Apply auto-fixes one tool at a time; never runs during analysis."""

    configure_logging(verbose)
    logger = build_cli_logger(emoji=emoji, color=color)
    project_root = root.resolve()
    cfg = _load(config, project_root, logger)
    targets = resolve_targets(paths, project_root)

    outcomes = run_fixers(
        targets,
        cfg.tools,
        root=project_root,
        runner=run_command,
        which=find_executable,
        on_result=logger.fix_finished,
    )
    if not outcomes:
        logger.info("No enabled tool defines a fix command")
    failed = [outcome for outcome in outcomes if outcome.status is not RunStatus.SUCCESS]
    raise typer.Exit(code=ERROR_EXIT_CODE if failed else 0)


@app.command("tools")
def tools(
    config: CONFIG_OPTION = None,
    root: ROOT_OPTION = Path("."),
    emoji: EMOJI_OPTION = True,
    color: COLOR_OPTION = True,
) -> None:
    """List configured tools and whether their executables are available."""

    logger = build_cli_logger(emoji=emoji, color=color)
    cfg = _load(config, root.resolve(), logger)

    table = Table(box=box.SIMPLE_HEAD)
    for column in ("Tool", "Enabled", "Executable", "Available", "Parser", "Timeout", "Fixer"):
        table.add_column(column)
    missing = 0
    for spec in cfg.tools:
        available = find_executable(spec.executable) is not None
        missing += int(spec.enabled and not available)
        table.add_row(
            spec.name,
            "yes" if spec.enabled else "no",
            spec.executable,
            "yes" if available else "no",
            spec.parser,
            f"{spec.timeout:g}s",
            "yes" if spec.fix_command else "no",
        )
    Console(no_color=not color, markup=False, highlight=False).print(table)
    if missing:
        logger.warn(f"{missing} enabled tool(s) are not installed")
    raise typer.Exit(code=0)


__all__ = ["app"]
