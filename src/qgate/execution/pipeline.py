# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Concurrent execution of configured tools over a target set."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Collection, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from graphlib import TopologicalSorter
from pathlib import Path

from ..models import RunResult, RunStatus, ToolSpec
from ..process_utils import ProcessRegistry
from ..tools.adapter import ToolAdapter

LOGGER = logging.getLogger(__name__)


def default_jobs() -> int:
    """Return the default worker count: one per available CPU."""

    return max(1, os.cpu_count() or 1)


@dataclass(slots=True)
class PipelineHooks:
    """Optional callbacks used for progress reporting."""

    before_tool: Callable[[ToolSpec], None] | None = None
    after_tool: Callable[[RunResult], None] | None = None


class _DeadlineExceeded(Exception):
    """Internal signal raised when the global run deadline passes."""


class PipelineRunner:
    """Run tool adapters concurrently, honouring ordering and cancellation.

    Tools with no ``after`` relationship run in parallel, bounded by ``jobs``.
    A tool waits for every enabled tool named in its ``after`` list to finish,
    whatever their status. When ``run_timeout`` elapses or the user interrupts
    the run, every child process tracked by ``registry`` is terminated, the
    results gathered so far are kept and each unfinished tool is recorded
    with status ``ERROR``.

    A runner closes its registry on cancellation, so a registry serves one run.
    """

    def __init__(
        self,
        adapter: ToolAdapter,
        *,
        jobs: int | None = None,
        run_timeout: float | None = None,
        hooks: PipelineHooks | None = None,
        registry: ProcessRegistry | None = None,
    ) -> None:
        """Initialise the runner.

        Args:
            adapter: Capability used to execute each tool.
            jobs: Maximum concurrent tools; defaults to the CPU count.
            run_timeout: Optional global deadline in seconds.
            hooks: Optional progress callbacks.
            registry: Registry of child processes shared with ``adapter``.
        """

        if jobs is not None and jobs < 1:
            msg = "jobs must be at least 1"
            raise ValueError(msg)
        self._adapter = adapter
        self._jobs = jobs or default_jobs()
        self._run_timeout = run_timeout
        self._hooks = hooks or PipelineHooks()
        self._registry = registry

    @property
    def jobs(self) -> int:
        """Return the configured worker limit."""

        return self._jobs

    def execute(self, targets: Collection[str | Path], specs: Sequence[ToolSpec]) -> dict[str, RunResult]:
        """Run every enabled tool in ``specs`` over ``targets``.

        Args:
            targets: Paths handed to each tool.
            specs: Tool definitions in declaration order.

        Returns:
            dict[str, RunResult]: Results keyed by tool name in declaration order.
        """

        enabled = [spec for spec in specs if spec.enabled]
        by_name = {spec.name: spec for spec in enabled}
        position = {spec.name: index for index, spec in enumerate(enabled)}
        sorter: TopologicalSorter[str] = TopologicalSorter(
            {spec.name: [dep for dep in spec.after if dep in by_name] for spec in enabled},
        )
        sorter.prepare()

        results: dict[str, RunResult] = {}
        deadline = time.monotonic() + self._run_timeout if self._run_timeout is not None else None
        executor = ThreadPoolExecutor(max_workers=self._jobs, thread_name_prefix="qgate")
        in_flight: dict[Future[RunResult], ToolSpec] = {}
        cancel_reason: str | None = None
        try:
            while sorter.is_active():
                for name in sorted(sorter.get_ready(), key=position.__getitem__):
                    spec = by_name[name]
                    if self._hooks.before_tool is not None:
                        self._hooks.before_tool(spec)
                    in_flight[executor.submit(self._run_one, targets, spec)] = spec
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise _DeadlineExceeded
                done, _ = wait(in_flight, timeout=remaining, return_when=FIRST_COMPLETED)
                if not done:
                    raise _DeadlineExceeded
                for future in done:
                    spec = in_flight.pop(future)
                    result = future.result()
                    results[spec.name] = result
                    if self._hooks.after_tool is not None:
                        self._hooks.after_tool(result)
                    sorter.done(spec.name)
        except _DeadlineExceeded:
            cancel_reason = f"cancelled: run deadline of {self._run_timeout:g}s exceeded"
        except KeyboardInterrupt:
            cancel_reason = "cancelled: interrupted by user"
        finally:
            if cancel_reason is not None:
                LOGGER.debug("%s; terminating %d in-flight tool(s)", cancel_reason, len(in_flight))
                if self._registry is not None:
                    self._registry.close()
            executor.shutdown(wait=True, cancel_futures=True)

        if cancel_reason is not None:
            for spec in enabled:
                if spec.name not in results:
                    results[spec.name] = RunResult(spec=spec, status=RunStatus.ERROR, error=cancel_reason)
        return {spec.name: results[spec.name] for spec in enabled}

    def _run_one(self, targets: Collection[str | Path], spec: ToolSpec) -> RunResult:
        started = time.perf_counter()
        try:
            return self._adapter.run(targets, spec)
        except Exception as exc:  # noqa: BLE001 - recorded as an ERROR result
            LOGGER.debug("adapter for '%s' crashed", spec.name, exc_info=True)
            return RunResult(
                spec=spec,
                status=RunStatus.ERROR,
                duration=time.perf_counter() - started,
                error=f"adapter crashed: {type(exc).__name__}: {exc}",
            )


__all__ = ["PipelineHooks", "PipelineRunner", "default_jobs"]
