# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Execution of tool pipelines and fixers."""

from __future__ import annotations

from .fixer import FixResult, run_fixers
from .pipeline import PipelineHooks, PipelineRunner, default_jobs

__all__ = ["FixResult", "PipelineHooks", "PipelineRunner", "default_jobs", "run_fixers"]
