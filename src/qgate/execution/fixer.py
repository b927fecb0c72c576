# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Sequential auto-fix mode, kept separate from the read-only analysis pipeline."""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..models import RunStatus, ToolSpec
from ..process_utils import CommandTimeoutError
from ..tools.adapter import Runner, Which, expand_command, format_command

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FixResult:
    """Outcome of one fixer invocation."""

    tool: str
    status: RunStatus
    command: tuple[str, ...]
    duration: float = 0.0
    returncode: int | None = None
    error: str | None = None


def fixable(specs: Sequence[ToolSpec]) -> list[ToolSpec]:
    """Return enabled specs that define a ``fix_command``, in declaration order."""

    return [spec for spec in specs if spec.enabled and spec.fix_command]


def run_fixers(
    targets: Collection[str | Path],
    specs: Sequence[ToolSpec],
    *,
    root: Path,
    runner: Runner,
    which: Which,
    on_result: Callable[[FixResult], None] | None = None,
) -> list[FixResult]:
    """Run each fixer one at a time so no two tools rewrite files concurrently.

    Args:
        targets: Paths handed to each fixer.
        specs: Tool definitions in declaration order.
        root: Working directory for the fixers.
        runner: Command runner compatible with :func:`qgate.process_utils.run_command`.
        which: Executable lookup used to detect missing tools.
        on_result: Optional callback invoked after each fixer.

    Returns:
        list[FixResult]: One entry per fixer that was attempted.
    """

    outcomes: list[FixResult] = []
    for spec in fixable(specs):
        with tempfile.TemporaryDirectory(prefix=f"qgate-fix-{spec.name}-") as tmpdir:
            command = tuple(expand_command(spec.fix_command or (), targets=targets, root=root, tmpdir=tmpdir))
            outcome = _run_fixer(spec, command, root=root, runner=runner, which=which)
        outcomes.append(outcome)
        if on_result is not None:
            on_result(outcome)
    return outcomes


def _run_fixer(spec: ToolSpec, command: tuple[str, ...], *, root: Path, runner: Runner, which: Which) -> FixResult:
    resolved = which(command[0])
    if resolved is None:
        return FixResult(
            tool=spec.name,
            status=RunStatus.TOOL_NOT_FOUND,
            command=command,
            error=f"Executable '{command[0]}' was not found on PATH",
        )
    LOGGER.debug("%s: fixing with %s", spec.name, format_command(command))
    started = time.perf_counter()
    try:
        completed = runner([resolved, *command[1:]], cwd=root, env=spec.env, timeout=spec.timeout)
    except CommandTimeoutError:
        return FixResult(
            tool=spec.name,
            status=RunStatus.TIMEOUT,
            command=command,
            duration=time.perf_counter() - started,
            error=f"timed out after {spec.timeout:g}s",
        )
    duration = time.perf_counter() - started
    if completed.returncode not in spec.accepted_exit_codes:
        return FixResult(
            tool=spec.name,
            status=RunStatus.TOOL_FAILED,
            command=command,
            duration=duration,
            returncode=completed.returncode,
            error=(completed.stderr or "").strip() or f"exit code {completed.returncode}",
        )
    return FixResult(
        tool=spec.name,
        status=RunStatus.SUCCESS,
        command=command,
        duration=duration,
        returncode=completed.returncode,
    )


__all__ = ["FixResult", "fixable", "run_fixers"]
