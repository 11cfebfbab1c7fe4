# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parallel analyzer execution and finding collection."""

from __future__ import annotations

from .collector import CollectedFindings, FindingCollector, tooling_finding
from .runner import AnalyzerRunner, CancellationToken, RunnerBatch, WorkItem

__all__ = [
    "AnalyzerRunner",
    "CancellationToken",
    "CollectedFindings",
    "FindingCollector",
    "RunnerBatch",
    "WorkItem",
    "tooling_finding",
]
