# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Entry-point plugin loading for third-party analyzers.

Packages contribute analyzers by exposing an entry point in the
``reviewgate.analyzers`` group. The entry point may resolve to an
:class:`AnalyzerDefinition`, an iterable of definitions, or a zero-argument
factory returning either.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from importlib import metadata
from typing import Final

from .base import AnalyzerDefinition

ANALYZER_ENTRY_POINT_GROUP: Final[str] = "reviewgate.analyzers"

EntryPointLoader = Callable[[str], Iterable[metadata.EntryPoint]]


@dataclass(frozen=True, slots=True)
class PluginLoadResult:
    """Analyzers contributed by plugins plus one notice per entry point that failed."""

    analyzers: tuple[AnalyzerDefinition, ...] = ()
    failures: tuple[str, ...] = field(default_factory=tuple)


def _default_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=group)


def _expand(name: str, loaded: object) -> tuple[AnalyzerDefinition, ...]:
    candidate = loaded() if callable(loaded) and not isinstance(loaded, AnalyzerDefinition) else loaded
    if isinstance(candidate, AnalyzerDefinition):
        return (candidate,)
    if isinstance(candidate, Iterable):
        definitions = tuple(candidate)
        if all(isinstance(item, AnalyzerDefinition) for item in definitions):
            return definitions
    raise TypeError(f"Entry point '{name}' did not provide AnalyzerDefinition objects")


def load_entry_point_analyzers(
    group: str = ANALYZER_ENTRY_POINT_GROUP,
    *,
    loader: EntryPointLoader | None = None,
) -> PluginLoadResult:
    """Return analyzers contributed through entry points in ``group``.

    Each entry point is imported and expanded on its own; one that fails to
    import, raises from its factory or yields something other than analyzers
    is described in :attr:`PluginLoadResult.failures` and the rest still load.

    Args:
        group: Entry point group to inspect.
        loader: Optional replacement for :func:`importlib.metadata.entry_points`.

    Returns:
        PluginLoadResult: Contributed analyzers ordered by entry point name.
    """

    entries = sorted((loader or _default_entry_points)(group), key=lambda entry: entry.name)
    collected: list[AnalyzerDefinition] = []
    failures: list[str] = []
    for entry in entries:
        try:
            collected.extend(_expand(entry.name, entry.load()))
        except Exception as exc:  # third-party code; reported per entry point
            failures.append(f"analyzer plugin '{entry.name}' failed to load: {type(exc).__name__}: {exc}")
    return PluginLoadResult(analyzers=tuple(collected), failures=tuple(failures))


__all__ = ["ANALYZER_ENTRY_POINT_GROUP", "EntryPointLoader", "PluginLoadResult", "load_entry_point_analyzers"]
