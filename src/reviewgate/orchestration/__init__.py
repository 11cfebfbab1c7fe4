# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run orchestration for reviewgate."""

from __future__ import annotations

from .orchestrator import (
    EXIT_BLOCKED,
    EXIT_OK,
    EXIT_WARNINGS,
    Orchestrator,
    OrchestratorHooks,
    RunOutcome,
    RunPhase,
    exit_code_for,
    summary_line,
)

__all__ = [
    "EXIT_BLOCKED",
    "EXIT_OK",
    "EXIT_WARNINGS",
    "Orchestrator",
    "OrchestratorHooks",
    "RunOutcome",
    "RunPhase",
    "exit_code_for",
    "summary_line",
]
