# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for concurrent tool execution."""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Callable, Collection
from pathlib import Path

import pytest

from helpers import make_result, make_spec
from qgate.execution import PipelineHooks, PipelineRunner
from qgate.models import RunResult, RunStatus, ToolSpec
from qgate.process_utils import ProcessRegistry
from qgate.tools import CommandAdapter


class RecordingAdapter:
    """Adapter double that records start/finish events per tool."""

    def __init__(self, behaviours: dict[str, Callable[[ToolSpec], RunResult | None]] | None = None) -> None:
        self.behaviours = behaviours or {}
        self.events: list[tuple[str, str]] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def run(self, targets: Collection[str | Path], spec: ToolSpec) -> RunResult:
        with self._lock:
            self.events.append(("start", spec.name))
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            behaviour = self.behaviours.get(spec.name)
            outcome = behaviour(spec) if behaviour is not None else None
        finally:
            with self._lock:
                self.active -= 1
                self.events.append(("end", spec.name))
        return outcome or make_result(spec)


def _sleep(seconds: float) -> Callable[[ToolSpec], None]:
    def behaviour(spec: ToolSpec) -> None:
        time.sleep(seconds)

    return behaviour


def test_jobs_must_be_positive() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        PipelineRunner(RecordingAdapter(), jobs=0)


def test_default_jobs_is_positive() -> None:
    assert PipelineRunner(RecordingAdapter()).jobs >= 1


def test_results_follow_declaration_order() -> None:
    adapter = RecordingAdapter({"zeta": _sleep(0.05)})
    specs = [make_spec("zeta"), make_spec("alpha"), make_spec("mid")]

    results = PipelineRunner(adapter, jobs=3).execute(["a.py"], specs)

    assert list(results) == ["zeta", "alpha", "mid"]
    assert all(result.status is RunStatus.SUCCESS for result in results.values())


def test_independent_tools_run_concurrently() -> None:
    barrier = threading.Barrier(2, timeout=5)

    def meet(spec: ToolSpec) -> None:
        barrier.wait()

    adapter = RecordingAdapter({"one": meet, "two": meet})

    results = PipelineRunner(adapter, jobs=2).execute([], [make_spec("one"), make_spec("two")])

    assert [result.status for result in results.values()] == [RunStatus.SUCCESS, RunStatus.SUCCESS]
    assert adapter.peak == 2


def test_jobs_bounds_concurrency() -> None:
    adapter = RecordingAdapter({name: _sleep(0.05) for name in "abcd"})

    PipelineRunner(adapter, jobs=1).execute([], [make_spec(name) for name in "abcd"])

    assert adapter.peak == 1


def test_after_orders_dependent_tools() -> None:
    adapter = RecordingAdapter({"format": _sleep(0.1)})
    specs = [make_spec("lint", after=("format",)), make_spec("format")]

    PipelineRunner(adapter, jobs=4).execute([], specs)

    assert adapter.events.index(("end", "format")) < adapter.events.index(("start", "lint"))


def test_dependent_runs_when_prerequisite_fails() -> None:
    adapter = RecordingAdapter(
        {"format": lambda spec: RunResult(spec=spec, status=RunStatus.TOOL_FAILED, error="exit code 9")},
    )
    specs = [make_spec("format"), make_spec("lint", after=("format",))]

    results = PipelineRunner(adapter, jobs=2).execute([], specs)

    assert results["format"].status is RunStatus.TOOL_FAILED
    assert results["lint"].status is RunStatus.SUCCESS


def test_disabled_tools_are_skipped() -> None:
    adapter = RecordingAdapter()
    specs = [make_spec("on", after=("off",)), make_spec("off", enabled=False)]

    results = PipelineRunner(adapter, jobs=2).execute([], specs)

    assert list(results) == ["on"]
    assert ("start", "off") not in adapter.events


def test_adapter_crash_is_isolated() -> None:
    def explode(spec: ToolSpec) -> None:
        raise RuntimeError("boom")

    adapter = RecordingAdapter({"bad": explode})

    results = PipelineRunner(adapter, jobs=2).execute([], [make_spec("bad"), make_spec("good")])

    assert results["bad"].status is RunStatus.ERROR
    assert results["bad"].error == "adapter crashed: RuntimeError: boom"
    assert results["good"].status is RunStatus.SUCCESS


def test_hooks_observe_each_tool() -> None:
    started: list[str] = []
    finished: list[str] = []
    hooks = PipelineHooks(
        before_tool=lambda spec: started.append(spec.name),
        after_tool=lambda result: finished.append(result.tool),
    )

    PipelineRunner(RecordingAdapter(), jobs=1, hooks=hooks).execute([], [make_spec("a"), make_spec("b")])

    assert started == ["a", "b"]
    assert sorted(finished) == ["a", "b"]


def test_run_deadline_cancels_and_keeps_partial_results(project: Path) -> None:
    registry = ProcessRegistry()
    adapter = CommandAdapter(root=project, registry=registry)
    specs = [
        make_spec("quick", command=(sys.executable, "-c", "pass")),
        make_spec("slow", command=(sys.executable, "-c", "import time; time.sleep(60)"), timeout=120),
        make_spec("later", command=(sys.executable, "-c", "pass"), after=("slow",)),
    ]
    runner = PipelineRunner(adapter, jobs=2, run_timeout=3, registry=registry)

    started = time.monotonic()
    results = runner.execute([], specs)
    elapsed = time.monotonic() - started

    assert elapsed < 30
    assert results["quick"].status is RunStatus.SUCCESS
    assert results["slow"].status is RunStatus.ERROR
    assert results["later"].status is RunStatus.ERROR
    assert "run deadline of 3s exceeded" in (results["slow"].error or "")
    assert registry.closed


def test_hung_tool_times_out_without_blocking_others(project: Path) -> None:
    specs = [
        make_spec("hung", command=(sys.executable, "-c", "import time; time.sleep(10)"), timeout=2),
        make_spec("quick", command=(sys.executable, "-c", "pass")),
    ]

    results = PipelineRunner(CommandAdapter(root=project), jobs=2).execute([], specs)

    assert results["hung"].status is RunStatus.TIMEOUT
    assert 1.5 < results["hung"].duration < 5
    assert results["quick"].status is RunStatus.SUCCESS
