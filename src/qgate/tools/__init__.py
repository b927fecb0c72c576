# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool adapters and built-in tool definitions."""

from __future__ import annotations

from .adapter import CommandAdapter, ToolAdapter, expand_command
from .presets import PRESETS, get_preset

__all__ = ["PRESETS", "CommandAdapter", "ToolAdapter", "expand_command", "get_preset"]
