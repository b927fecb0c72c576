# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers that normalise tool output into :class:`qgate.models.Issue` objects."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from .base import (
    JsonParser,
    ParseContext,
    ParseError,
    ParseOutcome,
    Parser,
    TextParser,
    XmlParser,
)
from .generic import parse_checkstyle, parse_regex, parse_sarif
from .metrics import parse_cobertura, parse_jscpd
from .python import (
    parse_bandit,
    parse_black,
    parse_flake8,
    parse_isort,
    parse_mypy,
    parse_mypy_text,
    parse_pylint,
    parse_ruff,
)

PARSERS: Final[Mapping[str, Parser]] = {
    "black": TextParser(parse_black, stream="stderr"),
    "isort": TextParser(parse_isort, stream="both"),
    "flake8": TextParser(parse_flake8),
    "mypy": JsonParser(parse_mypy),
    "mypy-text": TextParser(parse_mypy_text),
    "bandit": JsonParser(parse_bandit, allow_empty=False),
    "ruff": JsonParser(parse_ruff),
    "pylint": JsonParser(parse_pylint),
    "jscpd": JsonParser(parse_jscpd, allow_empty=False),
    "cobertura": XmlParser(parse_cobertura),
    "checkstyle": XmlParser(parse_checkstyle),
    "sarif": JsonParser(parse_sarif, allow_empty=False),
    "regex": TextParser(parse_regex, stream="both"),
}


def get_parser(name: str) -> Parser:
    """Return the registered parser called ``name``.

    Raises:
        KeyError: If no parser is registered under ``name``.
    """

    try:
        return PARSERS[name]
    except KeyError:
        known = ", ".join(sorted(PARSERS))
        raise KeyError(f"unknown parser '{name}' (known parsers: {known})") from None


__all__ = [
    "PARSERS",
    "JsonParser",
    "ParseContext",
    "ParseError",
    "ParseOutcome",
    "Parser",
    "TextParser",
    "XmlParser",
    "get_parser",
]
