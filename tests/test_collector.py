# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for raw result normalisation."""

from __future__ import annotations

from reviewgate.analyzers.base import FindingDraft
from reviewgate.analyzers.registry import AnalyzerRegistry
from reviewgate.core.models import MARKER_ERROR, MARKER_TIMEOUT, TOOLING_CATEGORY, RawResult
from reviewgate.core.severity import Severity
from reviewgate.execution import FindingCollector


def test_timeout_marker_becomes_single_tooling_warning(make_analyzer) -> None:
    collector = FindingCollector(AnalyzerRegistry([make_analyzer("slow")]))
    raw = RawResult(
        analyzer_id="slow",
        target_path="a.php",
        marker=MARKER_TIMEOUT,
        error="exceeded time limit of 50ms",
    )

    collected = collector.collect([raw])

    assert len(collected.findings) == 1
    finding = collected.findings[0]
    assert finding.category == TOOLING_CATEGORY
    assert finding.severity is Severity.WARNING
    assert finding.confidence == 100
    assert finding.is_tooling
    assert "timed out" in finding.message
    assert "50ms" in finding.message
    assert collected.tooling == collected.findings


def test_error_marker_names_the_failure(make_analyzer) -> None:
    collector = FindingCollector(AnalyzerRegistry([make_analyzer("boom")]))
    raw = RawResult(analyzer_id="boom", target_path="a.php", marker=MARKER_ERROR, error="RuntimeError: x")

    (finding,) = collector.collect([raw]).findings

    assert finding.message == "Analyzer 'boom' failed: RuntimeError: x"


def test_parser_failure_becomes_tooling_finding(make_analyzer) -> None:
    def bad_parse(raw: RawResult) -> list[FindingDraft]:
        raise KeyError("line")

    collector = FindingCollector(AnalyzerRegistry([make_analyzer("fragile", parse=bad_parse)]))

    (finding,) = collector.collect([RawResult(analyzer_id="fragile", target_path="a.php")]).findings

    assert finding.is_tooling
    assert "could not be parsed" in finding.message


def test_unregistered_analyzer_output_is_reported() -> None:
    collector = FindingCollector(AnalyzerRegistry())

    (finding,) = collector.collect([RawResult(analyzer_id="ghost", target_path="a.php")]).findings

    assert finding.is_tooling
    assert "not registered" in finding.message


def test_drafts_are_normalised_with_analyzer_defaults(make_analyzer) -> None:
    def parse(raw: RawResult) -> list[FindingDraft]:
        return [
            FindingDraft(message=" escalate ", line=3, severity="error", confidence=150),
            FindingDraft(message="plain", line="7", file="sub\\b.php"),
            FindingDraft(message="labelled", severity="mystery", category="style"),
        ]

    analyzer = make_analyzer("mixed", parse=parse, severity=Severity.SUGGESTION, category="quality")
    collector = FindingCollector(AnalyzerRegistry([analyzer]))

    findings = collector.collect([RawResult(analyzer_id="mixed", target_path="a.php")]).findings

    first, second, third = findings
    assert (first.severity, first.confidence, first.message, first.line) == (Severity.CRITICAL, 100, "escalate", 3)
    assert (second.file, second.line, second.confidence) == ("sub/b.php", 7, analyzer.base_confidence)
    assert second.severity is Severity.SUGGESTION
    assert (third.category, third.severity, third.line) == ("style", Severity.SUGGESTION, None)
    assert all(finding.base_confidence == finding.confidence for finding in findings)


def test_positive_observations_are_deduplicated_and_sorted(make_analyzer) -> None:
    from dataclasses import replace

    analyzer = replace(
        make_analyzer("observer", parse=lambda raw: []),
        observe=lambda raw: [f"  good {raw.target_path}  ", "shared", ""],
    )
    collector = FindingCollector(AnalyzerRegistry([analyzer]))

    collected = collector.collect(
        [
            RawResult(analyzer_id="observer", target_path="b.php"),
            RawResult(analyzer_id="observer", target_path="a.php"),
        ]
    )

    assert collected.findings == ()
    assert collected.positive_findings == ("good a.php", "good b.php", "shared")
