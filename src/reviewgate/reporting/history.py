# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Persist identifiers of findings reported by earlier runs."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from ..core.models import Finding, Report
from ..errors import ConfigError


class FindingHistory:
    """Flat JSON list of finding ids seen in previous runs.

    The history file is the only state kept between runs. It lets reports
    tell new findings apart from ones that were already reported.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._seen: frozenset[str] | None = None

    @property
    def path(self) -> Path:
        """Return the location of the history file."""
        return self._path

    def load(self) -> frozenset[str]:
        """Return the recorded identifiers (empty when no history exists).

        Raises:
            ConfigError: If the history file exists but is not a JSON list of strings.
        """

        if self._seen is not None:
            return self._seen
        if not self._path.exists():
            self._seen = frozenset()
            return self._seen
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Unable to read finding history {self._path}: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise ConfigError(f"Finding history {self._path} must be a JSON list of ids")
        self._seen = frozenset(data)
        return self._seen

    def mark(self, findings: Iterable[Finding]) -> tuple[Finding, ...]:
        """Return ``findings`` with ``previously_reported`` set from the history."""

        seen = self.load()
        return tuple(
            finding.model_copy(update={"previously_reported": finding.id in seen}) for finding in findings
        )

    def update(self, report: Report) -> None:
        """Write the union of the stored ids and the report's findings."""

        reported = {finding.id for finding in report.findings if not finding.is_tooling}
        merged = sorted(self.load() | reported)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(merged, indent=2) + "\n", encoding="utf-8")
        self._seen = frozenset(merged)


__all__ = ["FindingHistory"]
