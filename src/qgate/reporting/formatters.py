# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Human-readable report rendering built on Rich tables."""

from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import Final

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..models import AggregatedReport, MergedIssue, RunStatus, Verdict
from ..severity import SEVERITY_ORDER, Severity, severity_rank

TEXT_WIDTH: Final[int] = 120
DEFAULT_TOP_ISSUES: Final[int] = 20

_STATUS_STYLES: Final[dict[RunStatus, str]] = {
    RunStatus.SUCCESS: "green",
    RunStatus.TOOL_FAILED: "red",
    RunStatus.TIMEOUT: "yellow",
    RunStatus.TOOL_NOT_FOUND: "yellow",
    RunStatus.ERROR: "bold red",
}

_SEVERITY_STYLES: Final[dict[Severity, str]] = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

_VERDICT_STYLES: Final[dict[Verdict, str]] = {
    Verdict.PASS: "bold green",
    Verdict.FAIL: "bold red",
    Verdict.ERROR: "bold magenta",
}


def _location(issue: MergedIssue, root: Path | None) -> str:
    if issue.file is None:
        return "<project>"
    path = Path(issue.file)
    if root is not None and path.is_relative_to(root):
        path = path.relative_to(root)
    parts = [str(path)]
    if issue.line is not None:
        parts.append(str(issue.line))
        if issue.column is not None:
            parts.append(str(issue.column))
    return ":".join(parts)


def top_issues(report: AggregatedReport, limit: int) -> list[MergedIssue]:
    """Return the ``limit`` most severe issues, ties kept in report order."""

    ranked = sorted(report.issues, key=lambda issue: -severity_rank(issue.severity))
    return ranked[:limit]


def _tools_table(report: AggregatedReport) -> Table:
    table = Table(title="Tools", box=box.SIMPLE_HEAD, title_justify="left", expand=False)
    table.add_column("Tool", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Issues", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Detail", overflow="fold")
    for result in report.ordered_results():
        metrics = []
        if result.metrics.coverage is not None:
            metrics.append(f"coverage {result.metrics.coverage:g}%")
        if result.metrics.duplication is not None:
            metrics.append(f"duplication {result.metrics.duplication:g}%")
        detail = result.error or ", ".join(metrics)
        table.add_row(
            result.tool,
            Text(result.status.value, style=_STATUS_STYLES[result.status]),
            str(len(result.issues)),
            f"{result.duration:.2f}s",
            detail,
        )
    return table


def _issues_table(issues: list[MergedIssue], root: Path | None) -> Table:
    table = Table(title="Top issues", box=box.SIMPLE_HEAD, title_justify="left", expand=False)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Location", overflow="fold")
    table.add_column("Tool", no_wrap=True)
    table.add_column("Rule", no_wrap=True)
    table.add_column("Message", overflow="fold")
    for issue in issues:
        table.add_row(
            Text(issue.severity.value, style=_SEVERITY_STYLES[issue.severity]),
            _location(issue, root),
            ",".join(issue.tools) or issue.tool,
            issue.rule or issue.rule_class.value,
            issue.message,
        )
    return table


def _summary_table(report: AggregatedReport) -> Table:
    table = Table(title="Summary", box=box.SIMPLE_HEAD, title_justify="left", show_header=False, expand=False)
    table.add_column(no_wrap=True)
    table.add_column(justify="right")
    for severity in reversed(SEVERITY_ORDER):
        table.add_row(Text(severity.value, style=_SEVERITY_STYLES[severity]), str(report.summary.get(severity, 0)))
    table.add_row("TOTAL", str(len(report.issues)))
    if report.coverage is not None:
        table.add_row("coverage", f"{report.coverage:g}%")
    if report.duplication is not None:
        table.add_row("duplication", f"{report.duplication:g}%")
    return table


def render_text(
    report: AggregatedReport,
    *,
    top: int = DEFAULT_TOP_ISSUES,
    root: Path | None = None,
    color: bool = False,
    width: int = TEXT_WIDTH,
) -> str:
    """Render a human-readable summary of ``report``.

    Output goes to an in-memory console with a fixed width, so identical
    reports always render to identical text.

    Args:
        report: Finalised report to render.
        top: Maximum number of issues listed individually.
        root: Optional directory issue paths are shown relative to.
        color: Emit ANSI styling when ``True``.
        width: Console width in columns.

    Returns:
        str: Rendered report.
    """

    buffer = StringIO()
    console = Console(
        file=buffer,
        width=width,
        color_system="standard" if color else None,
        force_terminal=color,
        no_color=not color,
        emoji=False,
        markup=False,
        highlight=False,
        legacy_windows=False,
    )
    console.print(_tools_table(report))
    shown = top_issues(report, top)
    if shown:
        console.print(_issues_table(shown, root))
        hidden = len(report.issues) - len(shown)
        if hidden > 0:
            console.print(f"... and {hidden} more issue(s)")
    console.print(_summary_table(report))
    if report.verdict is not None:
        console.print(Text(f"Verdict: {report.verdict.value}", style=_VERDICT_STYLES[report.verdict]))
    for reason in report.reasons:
        console.print(f"  - {reason}")
    return buffer.getvalue()


__all__ = ["DEFAULT_TOP_ISSUES", "render_text", "top_issues"]
