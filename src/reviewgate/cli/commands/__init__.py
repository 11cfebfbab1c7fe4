# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI command registry."""

from __future__ import annotations

import typer

from .analyze import analyze_command
from .analyzers import analyzers_command

__all__ = ["register_commands"]


def register_commands(app: typer.Typer) -> None:
    """Register the built-in commands on ``app``."""

    app.command(name="analyze", help="Review files and report validated findings.")(analyze_command)
    app.command(name="analyzers", help="List available analyzers.")(analyzers_command)
