# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Report aggregation, rendering and history tracking."""

from __future__ import annotations

from .aggregator import GatePolicy, aggregate, finding_sort_key
from .history import FindingHistory
from .render import RENDERERS, RenderedReport, render, render_json, render_markdown, render_report, render_text

__all__ = [
    "RENDERERS",
    "FindingHistory",
    "GatePolicy",
    "RenderedReport",
    "aggregate",
    "finding_sort_key",
    "render",
    "render_json",
    "render_markdown",
    "render_report",
    "render_text",
]
