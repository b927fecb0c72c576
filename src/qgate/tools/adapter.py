# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Adapters that execute one configured tool and normalise its output."""

from __future__ import annotations

import logging
import shlex
import tempfile
import time
from collections.abc import Callable, Collection, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final, Protocol

from ..models import RunResult, RunStatus, ToolSpec
from ..parsers import PARSERS, ParseContext, ParseError, Parser
from ..process_utils import CommandTimeoutError, ProcessRegistry, find_executable, run_command

LOGGER = logging.getLogger(__name__)

TARGETS_PLACEHOLDER: Final[str] = "{targets}"
ROOT_PLACEHOLDER: Final[str] = "{root}"
TMPDIR_PLACEHOLDER: Final[str] = "{tmpdir}"
PLACEHOLDERS: Final[frozenset[str]] = frozenset({TARGETS_PLACEHOLDER, ROOT_PLACEHOLDER, TMPDIR_PLACEHOLDER})

Runner = Callable[..., CompletedProcess[str]]
Which = Callable[[str], str | None]


class ToolAdapter(Protocol):
    """Function-shaped capability every tool integration satisfies."""

    def run(self, targets: Collection[str | Path], spec: ToolSpec) -> RunResult:
        """Execute ``spec`` over ``targets`` and return its normalised result."""
        ...


def expand_token(token: str, *, root: Path, tmpdir: str) -> str:
    """Substitute ``{root}`` and ``{tmpdir}`` inside a single argument."""

    return token.replace(ROOT_PLACEHOLDER, str(root)).replace(TMPDIR_PLACEHOLDER, tmpdir)


def expand_command(
    template: Sequence[str],
    *,
    targets: Collection[str | Path],
    root: Path,
    tmpdir: str,
) -> list[str]:
    """Build the argument vector for one invocation.

    A standalone ``{targets}`` token expands to one argument per target in
    sorted order. Values are never joined into a shell string, so paths
    containing spaces or shell metacharacters reach the tool verbatim.

    Args:
        template: Invocation template from the tool spec.
        targets: Paths to analyse.
        root: Project root substituted for ``{root}``.
        tmpdir: Scratch directory substituted for ``{tmpdir}``.

    Returns:
        list[str]: Discrete argument vector.
    """

    ordered = sorted(str(target) for target in targets)
    argv: list[str] = []
    for token in template:
        if token == TARGETS_PLACEHOLDER:
            argv.extend(ordered)
        else:
            argv.append(expand_token(token, root=root, tmpdir=tmpdir))
    return argv


def format_command(command: Sequence[str]) -> str:
    """Return a shell-quoted rendering of ``command`` for display only."""

    return " ".join(shlex.quote(part) for part in command)


@dataclass(slots=True)
class CommandAdapter:
    """Run a tool as a child process and parse its output.

    The adapter never raises for tool-level problems: a missing executable,
    a timeout, an unexpected exit code and unparseable output are all
    reported through :class:`RunResult.status`.
    """

    root: Path
    runner: Runner = run_command
    which: Which = find_executable
    registry: ProcessRegistry | None = None
    parsers: Mapping[str, Parser] = field(default_factory=lambda: PARSERS)

    def run(self, targets: Collection[str | Path], spec: ToolSpec) -> RunResult:
        """Execute ``spec`` over ``targets``.

        Args:
            targets: Paths handed to the tool through ``{targets}``.
            spec: Tool definition to execute.

        Returns:
            RunResult: Normalised issues on success, or a failure status.
        """

        started = time.perf_counter()
        with tempfile.TemporaryDirectory(prefix=f"qgate-{spec.name}-") as tmpdir:
            command = expand_command(spec.command, targets=targets, root=self.root, tmpdir=tmpdir)
            resolved = self.which(command[0])
            if resolved is None:
                LOGGER.debug("%s: executable '%s' not found", spec.name, command[0])
                return RunResult(
                    spec=spec,
                    status=RunStatus.TOOL_NOT_FOUND,
                    command=tuple(command),
                    error=f"Executable '{command[0]}' was not found on PATH",
                )

            LOGGER.debug("%s: running %s", spec.name, format_command(command))
            try:
                completed = self.runner(
                    [resolved, *command[1:]],
                    cwd=self.root,
                    env=spec.env,
                    timeout=spec.timeout,
                    registry=self.registry,
                )
            except CommandTimeoutError as exc:
                return RunResult(
                    spec=spec,
                    status=RunStatus.TIMEOUT,
                    duration=time.perf_counter() - started,
                    command=tuple(command),
                    stdout=exc.stdout,
                    stderr=exc.stderr,
                    error=f"timed out after {spec.timeout:g}s",
                )
            except FileNotFoundError as exc:
                return RunResult(
                    spec=spec,
                    status=RunStatus.TOOL_NOT_FOUND,
                    duration=time.perf_counter() - started,
                    command=tuple(command),
                    error=str(exc),
                )

            duration = time.perf_counter() - started
            failure = _FailureBuilder(spec, tuple(command), completed, duration)
            if completed.returncode not in spec.accepted_exit_codes:
                return failure.build(f"exit code {completed.returncode} is outside the documented range")

            try:
                report = self._read_report(spec, tmpdir)
                context = ParseContext(spec=spec, root=self.root, report=report)
                outcome = self.parsers[spec.parser].parse(completed.stdout, completed.stderr, context=context)
            except ParseError as exc:
                return failure.build(f"could not parse output: {exc}")

        LOGGER.debug("%s: %d issue(s) in %.2fs", spec.name, len(outcome.issues), duration)
        return RunResult(
            spec=spec,
            status=RunStatus.SUCCESS,
            issues=tuple(outcome.issues),
            duration=duration,
            returncode=completed.returncode,
            command=tuple(command),
            stdout=completed.stdout,
            stderr=completed.stderr,
            metrics=outcome.metrics,
        )

    def _read_report(self, spec: ToolSpec, tmpdir: str) -> str | None:
        if spec.report_path is None:
            return None
        path = Path(expand_token(spec.report_path, root=self.root, tmpdir=tmpdir))
        if not path.is_absolute():
            path = self.root / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ParseError(f"report file '{path}' is unreadable: {exc.strerror or exc}") from exc
        except UnicodeDecodeError as exc:
            raise ParseError(f"report file '{path}' is not valid UTF-8: {exc.reason}") from exc


@dataclass(frozen=True, slots=True)
class _FailureBuilder:
    spec: ToolSpec
    command: tuple[str, ...]
    completed: CompletedProcess[str]
    duration: float

    def build(self, error: str) -> RunResult:
        LOGGER.debug("%s: %s", self.spec.name, error)
        return RunResult(
            spec=self.spec,
            status=RunStatus.TOOL_FAILED,
            duration=self.duration,
            returncode=self.completed.returncode,
            command=self.command,
            stdout=self.completed.stdout or "",
            stderr=self.completed.stderr or "",
            error=error,
        )


__all__ = [
    "PLACEHOLDERS",
    "CommandAdapter",
    "Runner",
    "ToolAdapter",
    "Which",
    "expand_command",
    "expand_token",
    "format_command",
]
