# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from enum import Enum
from typing import Final


class Severity(str, Enum):
    """Severity tiers shared by every normalised issue, lowest first."""

    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_ORDER: Final[tuple[Severity, ...]] = (
    Severity.INFO,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
)

_SEVERITY_RANK: Final[dict[Severity, int]] = {sev: index for index, sev in enumerate(SEVERITY_ORDER)}


def severity_rank(severity: Severity) -> int:
    """Return the ordinal rank of ``severity`` (``INFO`` is ``0``)."""

    return _SEVERITY_RANK[severity]


def coerce_severity(value: Severity | str) -> Severity:
    """Parse ``value`` into a :class:`Severity`, ignoring case.

    Args:
        value: Existing severity or textual label such as ``"high"``.

    Returns:
        Severity: Matching severity member.

    Raises:
        ValueError: If ``value`` does not name a severity tier.
    """

    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).strip().upper())
    except ValueError as exc:
        choices = ", ".join(sev.value for sev in SEVERITY_ORDER)
        msg = f"unknown severity '{value}' (expected one of {choices})"
        raise ValueError(msg) from exc


def severities_at_or_above(threshold: Severity) -> tuple[Severity, ...]:
    """Return ``threshold`` and every tier ranked above it."""

    floor = severity_rank(threshold)
    return tuple(sev for sev in SEVERITY_ORDER if severity_rank(sev) >= floor)


_SEVERITY_TO_SARIF_LEVEL: Final[dict[Severity, str]] = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}


def severity_to_sarif(severity: Severity) -> str:
    """Map :class:`Severity` to a SARIF reporting level."""

    return _SEVERITY_TO_SARIF_LEVEL.get(severity, "warning")


__all__ = [
    "SEVERITY_ORDER",
    "Severity",
    "coerce_severity",
    "severities_at_or_above",
    "severity_rank",
    "severity_to_sarif",
]
