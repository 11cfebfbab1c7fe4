# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Analyzer registry providing lookup by identifier."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from .base import AnalyzerDefinition


class AnalyzerRegistry(Mapping[str, AnalyzerDefinition]):
    """Central registry for analyzer definitions.

    ``AnalyzerRegistry`` behaves like a read-only mapping whose keys are
    analyzer identifiers. Once :meth:`freeze` has been called (the orchestrator
    does so at the start of every run) further registrations are rejected so the
    registry stays immutable for the duration of a run.
    """

    def __init__(self, analyzers: Iterable[AnalyzerDefinition] = ()) -> None:
        """Initialise the registry, registering ``analyzers`` in order."""

        self._analyzers: dict[str, AnalyzerDefinition] = {}
        self._frozen = False
        for analyzer in analyzers:
            self.register(analyzer)

    def register(self, analyzer: AnalyzerDefinition) -> None:
        """Register ``analyzer`` enforcing uniqueness by identifier.

        Args:
            analyzer: Analyzer definition to insert into the registry.

        Raises:
            ValueError: If an analyzer with the same identifier is already registered.
            RuntimeError: If the registry has been frozen.
        """

        if self._frozen:
            raise RuntimeError("Analyzer registry is frozen; register analyzers before the run starts")
        if analyzer.id in self._analyzers:
            raise ValueError(f"Analyzer '{analyzer.id}' already registered")
        self._analyzers[analyzer.id] = analyzer

    def try_get(self, analyzer_id: str) -> AnalyzerDefinition | None:
        """Return the analyzer registered as ``analyzer_id`` or ``None``."""

        return self._analyzers.get(analyzer_id)

    def freeze(self) -> AnalyzerRegistry:
        """Reject further registrations and return ``self`` for chaining."""

        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        """Return ``True`` once :meth:`freeze` has been called."""
        return self._frozen

    def without(self, analyzer_ids: Iterable[str]) -> AnalyzerRegistry:
        """Return a new registry excluding ``analyzer_ids``.

        Raises:
            KeyError: If any identifier is unknown.
        """

        excluded = set(analyzer_ids)
        unknown = sorted(excluded - set(self._analyzers))
        if unknown:
            raise KeyError(f"Unknown analyzer(s): {', '.join(unknown)}")
        return AnalyzerRegistry(analyzer for analyzer in self.analyzers() if analyzer.id not in excluded)

    def analyzers(self) -> tuple[AnalyzerDefinition, ...]:
        """Return registered analyzers ordered by identifier."""

        return tuple(self._analyzers[key] for key in sorted(self._analyzers))

    def __len__(self) -> int:
        return len(self._analyzers)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._analyzers))

    def __getitem__(self, key: str) -> AnalyzerDefinition:
        return self._analyzers[key]


__all__ = ["AnalyzerRegistry"]
