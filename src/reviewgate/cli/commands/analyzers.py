# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``analyzers`` command: list the analyzers available to a run."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ..options import NO_COLOR_OPTION, NO_EMOJI_OPTION
from ..services import build_registry
from ..shared import build_cli_logger

IDS_ONLY_OPTION = Annotated[bool, typer.Option("--ids", help="Print only analyzer identifiers.")]


def analyzers_command(
    ids_only: IDS_ONLY_OPTION = False,
    no_emoji: NO_EMOJI_OPTION = False,
    no_color: NO_COLOR_OPTION = False,
) -> None:
    """List registered analyzers with their category and confidence hint."""

    logger = build_cli_logger(emoji=not no_emoji, no_color=no_color)
    registry = build_registry(logger)
    if ids_only:
        for analyzer_id in registry:
            logger.echo(analyzer_id)
        return

    table = Table(title="Analyzers", show_lines=False)
    table.add_column("Id", style="bold")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Confidence", justify="right")
    table.add_column("Description")
    for analyzer in registry.analyzers():
        table.add_row(
            analyzer.id,
            analyzer.category,
            analyzer.default_severity.value,
            str(analyzer.base_confidence),
            analyzer.description or analyzer.name,
        )
    Console(no_color=no_color, highlight=False).print(table)


__all__ = ["analyzers_command"]
