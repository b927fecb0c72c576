# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Report rendering entry points."""

from __future__ import annotations

from pathlib import Path

from ..models import AggregatedReport, ReportFormat
from .emitters import render_json, render_sarif
from .formatters import DEFAULT_TOP_ISSUES, render_text


def render(
    report: AggregatedReport,
    fmt: ReportFormat | str,
    *,
    top: int = DEFAULT_TOP_ISSUES,
    root: Path | None = None,
    color: bool = False,
) -> str:
    """Render ``report`` in ``fmt`` without modifying it.

    Args:
        report: Report to render.
        fmt: ``text``, ``json`` or ``sarif``.
        top: Issues listed individually in text output.
        root: Directory text output shows paths relative to.
        color: Emit ANSI styling in text output.

    Returns:
        str: Rendered document.
    """

    selected = ReportFormat(fmt)
    if selected is ReportFormat.JSON:
        return render_json(report)
    if selected is ReportFormat.SARIF:
        return render_sarif(report)
    return render_text(report, top=top, root=root, color=color)


__all__ = ["render", "render_json", "render_sarif", "render_text"]
