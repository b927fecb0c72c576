# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Return a temporary project root containing one module."""

    package = tmp_path / "pkg"
    package.mkdir()
    (package / "mod.py").write_text("import os\n", encoding="utf-8")
    return tmp_path
