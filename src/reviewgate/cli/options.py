# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Option declarations and normalisation for the ``analyze`` command."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from ..core.severity import Severity


class ModeChoice(str, Enum):
    """Exit code policy selectable on the command line."""

    BLOCKING = "blocking"
    WARN_ONLY = "warn-only"


class FormatChoice(str, Enum):
    """Report formats selectable on the command line."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


PATHS_OPTION = Annotated[
    list[str] | None,
    typer.Option("--paths", "-p", help="Comma-separated files or directories to review. Repeatable."),
]
STAGED_OPTION = Annotated[
    bool,
    typer.Option("--staged", help="Review files staged in git instead of explicit paths."),
]
ROOT_OPTION = Annotated[
    Path,
    typer.Option("--root", "-r", help="Project root; every target must live beneath it.", file_okay=False),
]
PARALLEL_OPTION = Annotated[
    int | None,
    typer.Option("--parallel", "-j", min=1, help="Maximum number of analyzers running at once."),
]
MIN_CONFIDENCE_OPTION = Annotated[
    int | None,
    typer.Option("--min-confidence", min=0, max=100, help="Drop findings scoring below this confidence."),
]
FAIL_ON_OPTION = Annotated[
    Severity | None,
    typer.Option("--fail-on", case_sensitive=False, help="Lowest severity that fails the review."),
]
MODE_OPTION = Annotated[
    ModeChoice | None,
    typer.Option("--mode", case_sensitive=False, help="'warn-only' always exits with status 0."),
]
FORMAT_OPTION = Annotated[
    FormatChoice | None,
    typer.Option("--format", "-f", case_sensitive=False, help="Report output format."),
]
CONFIG_OPTION = Annotated[
    Path | None,
    typer.Option("--config", help="Additional TOML configuration file.", exists=True, dir_okay=False),
]
RULES_OPTION = Annotated[
    list[Path] | None,
    typer.Option("--rules", help="TOML file of validation rules. Repeatable.", exists=True, dir_okay=False),
]
NO_DEFAULT_RULES_OPTION = Annotated[
    bool,
    typer.Option("--no-default-rules", help="Do not apply the built-in false-positive rules."),
]
HISTORY_OPTION = Annotated[
    Path | None,
    typer.Option("--history", help="JSON file of previously reported finding ids.", dir_okay=False),
]
UPDATE_HISTORY_OPTION = Annotated[
    bool,
    typer.Option("--update-history", help="Record this run's findings in the history file."),
]
MAX_WARNINGS_OPTION = Annotated[
    int | None,
    typer.Option("--max-warnings", min=0, help="Fail the review when more warnings than this survive."),
]
TIMEOUT_OPTION = Annotated[
    float | None,
    typer.Option("--timeout", min=0.001, help="Overall run timeout in seconds."),
]
OUTPUT_OPTION = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Write the report to this file instead of stdout.", dir_okay=False),
]
DISABLE_OPTION = Annotated[
    list[str] | None,
    typer.Option("--disable", help="Analyzer id to skip. Repeatable."),
]
NO_EMOJI_OPTION = Annotated[
    bool,
    typer.Option("--no-emoji", help="Disable emoji in console output."),
]
NO_COLOR_OPTION = Annotated[
    bool,
    typer.Option("--no-color", help="Disable coloured console output."),
]
DEBUG_OPTION = Annotated[
    bool,
    typer.Option("--debug", help="Print debug information to stderr."),
]


@dataclass(frozen=True, slots=True)
class AnalyzeOptions:
    """Normalised inputs for the ``analyze`` command."""

    root: Path
    paths: tuple[Path, ...] = ()
    staged: bool = False
    config_file: Path | None = None
    rules_files: tuple[Path, ...] = ()
    overrides: dict[str, dict[str, Any]] = field(default_factory=dict)
    use_emoji: bool = True
    use_color: bool = True
    debug: bool = False


def split_paths(values: list[str] | None) -> tuple[Path, ...]:
    """Return the paths named by repeated, comma-separated ``--paths`` values."""

    collected: list[Path] = []
    for value in values or []:
        collected.extend(Path(part.strip()).expanduser() for part in value.split(",") if part.strip())
    return tuple(collected)


def build_overrides(
    *,
    parallel: int | None = None,
    min_confidence: int | None = None,
    fail_on: Severity | None = None,
    mode: ModeChoice | None = None,
    output_format: FormatChoice | None = None,
    no_default_rules: bool = False,
    history: Path | None = None,
    update_history: bool = False,
    max_warnings: int | None = None,
    timeout: float | None = None,
    output: Path | None = None,
    disable: list[str] | None = None,
    no_emoji: bool = False,
    no_color: bool = False,
) -> dict[str, dict[str, Any]]:
    """Map command-line flags onto configuration sections.

    Flags left at their defaults map to ``None`` so that values from
    configuration files are kept.
    """

    return {
        "execution": {
            "parallel": parallel,
            "run_timeout_s": timeout,
            "disabled": list(disable) if disable else None,
        },
        "validation": {
            "min_confidence": min_confidence,
            "use_default_rules": False if no_default_rules else None,
        },
        "gate": {
            "fail_on": fail_on.value if fail_on is not None else None,
            "max_warnings": max_warnings,
            "mode": mode.value if mode is not None else None,
        },
        "output": {
            "format": output_format.value if output_format is not None else None,
            "emoji": False if no_emoji else None,
            "color": False if no_color else None,
            "output_path": output.resolve() if output is not None else None,
            "history_path": history.resolve() if history is not None else None,
            "update_history": True if update_history else None,
        },
    }


__all__ = [
    "AnalyzeOptions",
    "FormatChoice",
    "ModeChoice",
    "build_overrides",
    "split_paths",
]
