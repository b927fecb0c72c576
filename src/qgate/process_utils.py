# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution."""

from __future__ import annotations

import logging
import os
import shutil
import signal

# Bandit: subprocess usage is intentional; we provide a controlled wrapper around
# external tool execution with argument vectors and ``shell=False``.
import subprocess  # nosec B404
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final

LOGGER = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS: Final[float] = 2.0
_POSIX: Final[bool] = os.name == "posix"


class CommandTimeoutError(RuntimeError):
    """Raised when a command exceeds its timeout and has been terminated."""

    def __init__(self, command: Sequence[str], timeout: float, stdout: str, stderr: str) -> None:
        super().__init__(f"Command '{command[0]}' timed out after {timeout:.1f}s")
        self.command = tuple(command)
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr


def find_executable(name: str) -> str | None:
    """Return the resolved path for ``name`` or ``None`` when unavailable.

    Absolute and relative paths containing a separator are checked directly;
    bare names are looked up on ``PATH``.
    """

    if os.sep in name or (os.altsep and os.altsep in name):
        candidate = Path(name)
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        return None
    return shutil.which(name)


def terminate_process_group(process: subprocess.Popen[str], *, grace: float = TERMINATE_GRACE_SECONDS) -> None:
    """Stop ``process`` and its children, escalating from SIGTERM to SIGKILL."""

    if process.poll() is not None:
        return
    _signal_group(process, signal.SIGTERM)
    try:
        process.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        _signal_group(process, signal.SIGKILL if _POSIX else signal.SIGTERM)
        process.wait()


def _signal_group(process: subprocess.Popen[str], sig: int) -> None:
    try:
        if _POSIX:
            os.killpg(process.pid, sig)
        elif sig == signal.SIGTERM:
            process.terminate()
        else:
            process.kill()
    except (ProcessLookupError, PermissionError):
        # Group already gone; reap the leader directly.
        process.kill()


class ProcessRegistry:
    """Thread-safe registry of live child processes used for cancellation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processes: set[subprocess.Popen[str]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Return ``True`` once the registry has stopped accepting processes."""

        with self._lock:
            return self._closed

    def register(self, process: subprocess.Popen[str]) -> None:
        """Track ``process``; terminate it immediately if the registry is closed."""

        with self._lock:
            if not self._closed:
                self._processes.add(process)
                return
        terminate_process_group(process, grace=0.1)

    def unregister(self, process: subprocess.Popen[str]) -> None:
        """Stop tracking ``process``."""

        with self._lock:
            self._processes.discard(process)

    def close(self) -> None:
        """Refuse further registrations and terminate every tracked process."""

        with self._lock:
            self._closed = True
            processes = list(self._processes)
            self._processes.clear()
        for process in processes:
            LOGGER.debug("terminating child process %s", process.pid)
            terminate_process_group(process)


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    registry: ProcessRegistry | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute ``args`` in its own process group and capture its output.

    Args:
        args: Argument vector; the first entry names the executable.
        cwd: Working directory for the child process.
        env: Extra environment variables layered over ``os.environ``.
        timeout: Seconds to wait before terminating the process group.
        registry: Optional registry enabling external cancellation.

    Returns:
        subprocess.CompletedProcess[str]: Exit status and captured streams.

    Raises:
        CommandTimeoutError: If the command outlives ``timeout``.
        FileNotFoundError: If the executable cannot be launched.
    """

    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    merged_env = {**os.environ, **env} if env else None
    # Bandit: commands originate from validated tool configuration and are
    # passed as argument lists without shell expansion.
    process = subprocess.Popen(  # nosec B603
        list(args),
        cwd=str(cwd) if cwd is not None else None,
        env=merged_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
        start_new_session=_POSIX,
    )
    if registry is not None:
        registry.register(process)
    try:
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            terminate_process_group(process)
            stdout, stderr = process.communicate()
            raise CommandTimeoutError(args, timeout or 0.0, stdout or "", stderr or "") from None
    finally:
        if registry is not None:
            registry.unregister(process)
    return subprocess.CompletedProcess(list(args), process.returncode, stdout or "", stderr or "")


__all__ = [
    "CommandTimeoutError",
    "ProcessRegistry",
    "find_executable",
    "run_command",
    "terminate_process_group",
]
