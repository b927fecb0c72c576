# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (logging, options, exit handling)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from ..execution.fixer import FixResult
from ..logging import fail as core_fail
from ..logging import info as core_info
from ..logging import ok as core_ok
from ..logging import warn as core_warn
from ..models import RunResult, RunStatus

CONFIG_OPTION = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Configuration file (default: discovered under --root).", dir_okay=False),
]
ROOT_OPTION = Annotated[
    Path,
    typer.Option("--root", help="Project root; tools run from here.", file_okay=False, exists=True),
]
PATHS_ARGUMENT = Annotated[
    list[Path] | None,
    typer.Argument(help="Files or directories to analyse (default: the project root).", show_default=False),
]
EMOJI_OPTION = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Toggle emoji in status output.")]
COLOR_OPTION = Annotated[bool, typer.Option("--color/--no-color", help="Toggle ANSI colour output.")]
VERBOSE_OPTION = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details to stderr.")]


@dataclass(slots=True)
class CLILogger:
    """Adapter around project logging helpers respecting CLI emoji and colour settings."""

    use_emoji: bool
    use_color: bool

    def fail(self, message: str) -> None:
        """Log a failure message."""

        core_fail(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def warn(self, message: str) -> None:
        """Log a warning message."""

        core_warn(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def ok(self, message: str) -> None:
        """Log a success message."""

        core_ok(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def info(self, message: str) -> None:
        """Log an informational message."""

        core_info(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def tool_finished(self, result: RunResult) -> None:
        """Report one tool's completion, choosing the level from its status."""

        summary = f"{result.tool}: {result.status.value} in {result.duration:.2f}s"
        if result.status is RunStatus.SUCCESS:
            self.ok(f"{summary} ({len(result.issues)} issue(s))")
        elif result.status is RunStatus.ERROR:
            self.fail(f"{summary}: {result.error}")
        else:
            self.warn(f"{summary}: {result.error}")

    def fix_finished(self, outcome: FixResult) -> None:
        """Report one fixer's completion."""

        if outcome.status is RunStatus.SUCCESS:
            self.ok(f"{outcome.tool}: fixed in {outcome.duration:.2f}s")
        else:
            self.warn(f"{outcome.tool}: {outcome.status.value}: {outcome.error}")


def build_cli_logger(*, emoji: bool, color: bool) -> CLILogger:
    """Return a :class:`CLILogger` for the provided presentation flags."""

    return CLILogger(use_emoji=emoji, use_color=color)


def resolve_targets(paths: list[Path] | None, root: Path) -> list[str]:
    """Return absolute target paths, defaulting to ``root``.

    Raises:
        typer.BadParameter: If a target does not exist.
    """

    if not paths:
        return [str(root)]
    targets = []
    for path in paths:
        candidate = path if path.is_absolute() else Path.cwd() / path
        if not candidate.exists():
            raise typer.BadParameter(f"target '{path}' does not exist", param_hint="PATHS")
        targets.append(str(candidate.resolve()))
    return sorted(set(targets))


__all__ = [
    "COLOR_OPTION",
    "CONFIG_OPTION",
    "EMOJI_OPTION",
    "PATHS_ARGUMENT",
    "ROOT_OPTION",
    "VERBOSE_OPTION",
    "CLILogger",
    "build_cli_logger",
    "resolve_targets",
]
