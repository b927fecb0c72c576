# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for status output and verbose logging."""

from __future__ import annotations

import logging

import pytest

from helpers import make_result, make_spec
from qgate.cli.shared import build_cli_logger
from qgate.logging import PACKAGE_LOGGER, configure_logging, emoji
from qgate.models import RunStatus


@pytest.fixture
def clean_logger():
    handlers = list(PACKAGE_LOGGER.handlers)
    level = PACKAGE_LOGGER.level
    propagate = PACKAGE_LOGGER.propagate
    yield PACKAGE_LOGGER
    PACKAGE_LOGGER.handlers[:] = handlers
    PACKAGE_LOGGER.setLevel(level)
    PACKAGE_LOGGER.propagate = propagate
    if hasattr(PACKAGE_LOGGER, "_qgate_verbose_configured"):
        delattr(PACKAGE_LOGGER, "_qgate_verbose_configured")


def test_emoji_toggle() -> None:
    assert emoji("✅ ", True) == "✅ "
    assert emoji("✅ ", False) == ""


def test_configure_logging_is_opt_in(clean_logger: logging.Logger) -> None:
    before = len(clean_logger.handlers)

    configure_logging(False)
    assert len(clean_logger.handlers) == before

    configure_logging(True)
    configure_logging(True)
    assert len(clean_logger.handlers) == before + 1
    assert clean_logger.level == logging.DEBUG


def test_tool_finished_messages_go_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    logger = build_cli_logger(emoji=False, color=False)

    logger.tool_finished(make_result(make_spec("ruff"), duration=0.5))
    logger.tool_finished(make_result(make_spec("mypy"), status=RunStatus.TIMEOUT, error="timed out after 5s"))

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "ruff: SUCCESS in 0.50s (0 issue(s))" in captured.err
    assert "mypy: TIMEOUT in 0.00s: timed out after 5s" in captured.err
