# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from reviewgate.analyzers.base import AnalyzerDefinition, ConfidenceHint, FindingDraft
from reviewgate.core.models import Finding, RawResult, Target
from reviewgate.core.severity import Severity
from reviewgate.runtime.console import get_console_manager

AnalyzerFactory = Callable[..., AnalyzerDefinition]
FileWriter = Callable[[str, str], Path]


@pytest.fixture(autouse=True)
def _fresh_consoles() -> None:
    """Rebuild consoles per test so captured stderr streams are honoured."""
    get_console_manager().clear()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Return an empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def write_file(project: Path) -> FileWriter:
    """Return a helper writing ``content`` to ``relative`` under the project root."""

    def write(relative: str, content: str) -> Path:
        path = project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return write


def _needle_records(needle: str) -> Callable[[Target], list[dict[str, Any]]]:
    def run(target: Target) -> list[dict[str, Any]]:
        return [
            {"line": number, "evidence": text.strip()}
            for number, text in enumerate(target.read_text().splitlines(), start=1)
            if needle in text
        ]

    return run


@pytest.fixture
def make_analyzer() -> AnalyzerFactory:
    """Return a factory for analyzers that flag lines containing ``needle``."""

    def factory(
        analyzer_id: str = "needle",
        *,
        needle: str = "TODO",
        message: str | None = None,
        category: str = "quality",
        severity: Severity = Severity.WARNING,
        hint: ConfidenceHint = ConfidenceHint.PATTERN,
        timeout_ms: int | None = None,
        run: Callable[[Target], Any] | None = None,
        parse: Callable[[RawResult], list[FindingDraft]] | None = None,
        applies_to: Callable[[Target], bool] | None = None,
    ) -> AnalyzerDefinition:
        text = message or f"found {needle}"

        def default_parse(raw: RawResult) -> list[FindingDraft]:
            return [
                FindingDraft(message=text, line=record["line"], evidence=record["evidence"])
                for record in raw.records
            ]

        return AnalyzerDefinition(
            id=analyzer_id,
            name=analyzer_id.title(),
            category=category,
            applies_to=applies_to or (lambda target: target.exists),
            run=run or _needle_records(needle),
            parse=parse or default_parse,
            timeout_ms=timeout_ms,
            confidence_hint=hint,
            default_severity=severity,
        )

    return factory


@pytest.fixture
def make_finding() -> Callable[..., Finding]:
    """Return a factory for pending findings with sensible defaults."""

    def factory(
        *,
        analyzer_id: str = "needle",
        category: str = "quality",
        severity: Severity = Severity.WARNING,
        confidence: int = 85,
        file: str = "app.php",
        line: int | None = 1,
        message: str = "found TODO",
        evidence: str = "",
        synthetic: bool = False,
    ) -> Finding:
        return Finding.create(
            analyzer_id=analyzer_id,
            category=category,
            severity=severity,
            confidence=confidence,
            file=file,
            line=line,
            message=message,
            evidence_snippet=evidence,
            synthetic=synthetic,
        )

    return factory
