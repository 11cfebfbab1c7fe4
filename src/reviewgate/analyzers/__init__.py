# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Analyzer plugin interface, registry, and built-in checks."""

from __future__ import annotations

from .base import BASE_CONFIDENCE, AnalyzerDefinition, ConfidenceHint, FindingDraft, coerce_raw_result
from .builtin import builtin_analyzers, default_registry
from .command import CommandSpec, command_analyzer
from .plugins import PluginLoadResult, load_entry_point_analyzers
from .registry import AnalyzerRegistry

__all__ = [
    "BASE_CONFIDENCE",
    "AnalyzerDefinition",
    "AnalyzerRegistry",
    "CommandSpec",
    "ConfidenceHint",
    "FindingDraft",
    "PluginLoadResult",
    "builtin_analyzers",
    "coerce_raw_result",
    "command_analyzer",
    "default_registry",
    "load_entry_point_analyzers",
]
