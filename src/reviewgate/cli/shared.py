# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (logging and errors)."""

from __future__ import annotations

import re
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.text import Text

from ..logging import fail as core_fail
from ..logging import info as core_info
from ..logging import ok as core_ok
from ..logging import warn as core_warn

EXIT_USAGE_ERROR = 2


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = EXIT_USAGE_ERROR) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around project logging helpers respecting CLI presentation flags."""

    console: Console
    use_emoji: bool
    use_color: bool | None = None
    debug_enabled: bool = False
    _key_value_re: re.Pattern[str] = re.compile(r"([\w-]+)=(\".*?\"|\S+)")

    def fail(self, message: str) -> None:
        """Log a failure message."""
        core_fail(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def warn(self, message: str) -> None:
        """Log a warning message."""
        core_warn(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def ok(self, message: str) -> None:
        """Log a success message."""
        core_ok(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def info(self, message: str) -> None:
        """Log an informational message."""
        core_info(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def echo(self, message: str, *, nl: bool = True) -> None:
        """Write ``message`` to stdout using Typer's echo helper."""
        typer.echo(message, nl=nl)

    def debug(self, message: str) -> None:
        """Emit a debug message when debug logging is enabled.

        ``key=value`` pairs inside ``message`` are highlighted.
        """

        if not self.debug_enabled:
            return
        text = Text("[debug] ", style="bold cyan")
        cursor = 0
        for match in self._key_value_re.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start], style="dim")
            text.append(match.group(1), style="bold magenta")
            text.append("=", style="dim")
            text.append(match.group(2), style="bold green")
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:], style="dim")
        self.console.print(text)


def build_cli_logger(*, emoji: bool, debug: bool = False, no_color: bool = False) -> CLILogger:
    """Return a :class:`CLILogger` bound to a dedicated stderr console.

    Args:
        emoji: Whether log output may include emoji glyphs.
        debug: Whether debug logging should be enabled.
        no_color: Whether terminal colour output should be disabled.

    Returns:
        CLILogger: Configured logger.
    """

    console = Console(stderr=True, no_color=no_color, highlight=False)
    return CLILogger(console=console, use_emoji=emoji, use_color=False if no_color else None, debug_enabled=debug)


__all__ = ["EXIT_USAGE_ERROR", "CLIError", "CLILogger", "build_cli_logger"]
