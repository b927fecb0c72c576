# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Gate evaluation: turn an aggregated report into a verdict."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .config import GateConfig
from .models import AggregatedReport, RunStatus, Verdict
from .severity import SEVERITY_ORDER

EXIT_CODES: Final[dict[Verdict, int]] = {
    Verdict.PASS: 0,
    Verdict.FAIL: 1,
    Verdict.ERROR: 2,
}


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Verdict together with every finding that contributed to it."""

    verdict: Verdict
    errors: tuple[str, ...] = ()
    violations: tuple[str, ...] = ()

    @property
    def reasons(self) -> tuple[str, ...]:
        """Return infrastructure errors followed by threshold violations."""

        return (*self.errors, *self.violations)

    @property
    def exit_code(self) -> int:
        """Return the process exit code for this verdict."""

        return EXIT_CODES[self.verdict]


def _infrastructure_errors(report: AggregatedReport, config: GateConfig) -> list[str]:
    errors = []
    for result in report.ordered_results():
        if result.status is RunStatus.SUCCESS:
            continue
        if result.status is RunStatus.ERROR:
            errors.append(f"{result.tool}: {result.error or 'adapter error'}")
        elif config.is_fatal(result.tool):
            detail = f" ({result.error})" if result.error else ""
            errors.append(f"{result.tool}: fatal tool ended with {result.status.value}{detail}")
    return errors


def _threshold_violations(report: AggregatedReport, config: GateConfig) -> list[str]:
    violations = []
    for severity in SEVERITY_ORDER:
        limit = config.limit(severity)
        count = report.summary.get(severity, 0)
        if limit is not None and count > limit:
            violations.append(f"{count} {severity.value} issue(s) exceed the limit of {limit}")
    if config.min_coverage is not None:
        if report.coverage is None:
            violations.append(f"coverage not reported (minimum {config.min_coverage:g}%)")
        elif report.coverage < config.min_coverage:
            violations.append(f"coverage {report.coverage:g}% is below the minimum of {config.min_coverage:g}%")
    if config.max_duplication is not None:
        if report.duplication is None:
            violations.append(f"duplication not reported (maximum {config.max_duplication:g}%)")
        elif report.duplication > config.max_duplication:
            violations.append(
                f"duplication {report.duplication:g}% exceeds the maximum of {config.max_duplication:g}%",
            )
    return violations


def decide(report: AggregatedReport, config: GateConfig) -> GateDecision:
    """Evaluate ``report`` against ``config``.

    ERROR outranks FAIL, which outranks PASS. ERROR results from a fatal tool
    ending in any status other than ``SUCCESS`` or from any adapter crash;
    FAIL from a severity tier above its limit, coverage below its minimum or
    duplication above its maximum. A threshold on a metric that no tool
    reported counts as a violation.

    Args:
        report: Aggregated report for the run.
        config: Thresholds and tool policies.

    Returns:
        GateDecision: Verdict and the reasons behind it.
    """

    errors = _infrastructure_errors(report, config)
    violations = _threshold_violations(report, config)
    if errors:
        verdict = Verdict.ERROR
    elif violations:
        verdict = Verdict.FAIL
    else:
        verdict = Verdict.PASS
    return GateDecision(verdict=verdict, errors=tuple(errors), violations=tuple(violations))


def evaluate(report: AggregatedReport, config: GateConfig) -> Verdict:
    """Return only the verdict for ``report`` under ``config``."""

    return decide(report, config).verdict


def finalize(report: AggregatedReport, config: GateConfig) -> AggregatedReport:
    """Return a copy of ``report`` carrying its verdict and reasons."""

    decision = decide(report, config)
    return report.model_copy(update={"verdict": decision.verdict, "reasons": decision.reasons})


__all__ = ["EXIT_CODES", "GateDecision", "decide", "evaluate", "finalize"]
