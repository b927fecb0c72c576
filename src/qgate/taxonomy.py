# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared rule taxonomy used to collapse findings from different tools."""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Final


class RuleClass(str, Enum):
    """Coarse problem classes that tool-specific rule identifiers map onto."""

    STYLE = "style"
    TYPE_ERROR = "type-error"
    SECURITY = "security"
    DUPLICATION = "duplication"
    COMPLEXITY = "complexity"


# Ordered: the first matching pattern for a tool wins.
_RULE_PATTERNS: Final[tuple[tuple[re.Pattern[str], RuleClass], ...]] = (
    (re.compile(r"^(duplicate-code|R0801)$"), RuleClass.DUPLICATION),
    (re.compile(r"^(C90\d|PLR09\d\d|R0901|R0902|R0911|R0912|R0913|R0914|R0915|R1702)$"), RuleClass.COMPLEXITY),
    (re.compile(r"^too-many-"), RuleClass.COMPLEXITY),
    (re.compile(r"^S\d{3}$"), RuleClass.SECURITY),
    (re.compile(r"^B[1-7]\d\d$"), RuleClass.SECURITY),
    (re.compile(r"^(report[A-Z]\w*|no-member|E1101)$"), RuleClass.TYPE_ERROR),
)

DEFAULT_TOOL_CLASSES: Final[dict[str, RuleClass]] = {
    "black": RuleClass.STYLE,
    "isort": RuleClass.STYLE,
    "flake8": RuleClass.STYLE,
    "ruff": RuleClass.STYLE,
    "pylint": RuleClass.STYLE,
    "mypy": RuleClass.TYPE_ERROR,
    "pyright": RuleClass.TYPE_ERROR,
    "bandit": RuleClass.SECURITY,
    "jscpd": RuleClass.DUPLICATION,
    "radon": RuleClass.COMPLEXITY,
}


def _match_override(rule: str, overrides: Mapping[str, RuleClass]) -> RuleClass | None:
    best: tuple[int, RuleClass] | None = None
    for prefix, rule_class in overrides.items():
        if rule.startswith(prefix) and (best is None or len(prefix) > best[0]):
            best = (len(prefix), rule_class)
    return best[1] if best else None


def classify_rule(
    tool: str,
    rule: str | None,
    *,
    default: RuleClass | None = None,
    overrides: Mapping[str, RuleClass] | None = None,
) -> RuleClass:
    """Map a tool-specific rule identifier onto the shared taxonomy.

    Resolution order is: the longest configured prefix override, the built-in
    rule patterns, the tool's configured default class, the built-in default
    for well-known tool names, and finally :attr:`RuleClass.STYLE`.

    Args:
        tool: Name of the tool that emitted the rule.
        rule: Tool-specific rule identifier, if any.
        default: Class configured for the tool as a whole.
        overrides: Rule-prefix overrides configured for the tool.

    Returns:
        RuleClass: Normalised class used for deduplication.
    """

    code = (rule or "").strip()
    if code and overrides:
        matched = _match_override(code, overrides)
        if matched is not None:
            return matched
    if code:
        for pattern, rule_class in _RULE_PATTERNS:
            if pattern.search(code):
                return rule_class
    if default is not None:
        return default
    return DEFAULT_TOOL_CLASSES.get(tool, RuleClass.STYLE)


__all__ = ["DEFAULT_TOOL_CLASSES", "RuleClass", "classify_rule"]
