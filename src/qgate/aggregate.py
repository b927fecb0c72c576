# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Merge per-tool results into a single deduplicated report."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from .models import AggregatedReport, Issue, MergedIssue, RunResult, RunStatus, empty_summary
from .severity import severity_rank


def _issue_order(issue: Issue) -> tuple[str, int, int, str, str, str, str]:
    return (
        issue.file or "",
        issue.line if issue.line is not None else -1,
        issue.column if issue.column is not None else -1,
        issue.rule_class.value,
        issue.tool,
        issue.rule,
        issue.message,
    )


def _representative_order(issue: Issue) -> tuple[int, str, str, str, int]:
    return (
        -severity_rank(issue.severity),
        issue.tool,
        issue.rule,
        issue.message,
        issue.column if issue.column is not None else -1,
    )


def merge_issues(group: Sequence[Issue]) -> MergedIssue:
    """Collapse issues sharing a dedup key into one :class:`MergedIssue`.

    The most severe finding wins; ties are broken by tool name, rule and
    message so the choice never depends on input order. Every contributing
    tool and raw payload is retained.

    Args:
        group: Non-empty issues sharing ``(file, line, rule class)``.

    Returns:
        MergedIssue: Representative issue carrying all payloads.
    """

    ordered = sorted(group, key=_representative_order)
    head = ordered[0]
    return MergedIssue(
        **head.model_dump(exclude={"payload"}),
        payload=head.payload,
        tools=tuple(sorted({issue.tool for issue in ordered})),
        payloads=tuple(issue.payload for issue in sorted(ordered, key=_issue_order)),
    )


def deduplicate(issues: Iterable[Issue]) -> list[MergedIssue]:
    """Group ``issues`` by dedup key and merge each group, canonically sorted."""

    groups: dict[tuple[str, int, str], list[Issue]] = defaultdict(list)
    for issue in issues:
        groups[issue.dedup_key()].append(issue)
    return sorted((merge_issues(group) for group in groups.values()), key=_issue_order)


def aggregate(
    results: Mapping[str, RunResult],
    *,
    order: Sequence[str] | None = None,
) -> AggregatedReport:
    """Build the merged report for one pipeline run.

    The function is pure and independent of the iteration order of
    ``results``: issues, summary and metrics are derived from canonically
    sorted data. ``order`` only controls how tools are listed for display
    and defaults to alphabetical order.

    Args:
        results: Run results keyed by tool name.
        order: Optional display order of tool names.

    Returns:
        AggregatedReport: Report awaiting a gate verdict.
    """

    names = sorted(results)
    issues = deduplicate(
        issue for name in names if results[name].status is RunStatus.SUCCESS for issue in results[name].issues
    )

    summary = empty_summary()
    for issue in issues:
        summary[issue.severity] += 1

    coverages = [r.metrics.coverage for r in results.values() if r.metrics.coverage is not None]
    duplications = [r.metrics.duplication for r in results.values() if r.metrics.duplication is not None]

    display = tuple(dict.fromkeys(name for name in order if name in results)) if order is not None else tuple(names)
    display += tuple(name for name in names if name not in display)

    return AggregatedReport(
        results={name: results[name] for name in names},
        order=display,
        issues=tuple(issues),
        summary=summary,
        coverage=min(coverages) if coverages else None,
        duplication=max(duplications) if duplications else None,
    )


__all__ = ["aggregate", "deduplicate", "merge_issues"]
