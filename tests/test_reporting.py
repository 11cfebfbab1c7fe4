# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for aggregation, the gate policy, rendering and finding history."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from reviewgate.core.models import Report
from reviewgate.core.severity import Severity
from reviewgate.errors import ConfigError, ReportRenderError
from reviewgate.reporting import (
    FindingHistory,
    GatePolicy,
    aggregate,
    render,
    render_markdown,
    render_report,
    render_text,
)


@pytest.fixture
def mixed_findings(make_finding):
    return [
        make_finding(severity=Severity.SUGGESTION, file="b.php", line=1, message="style nit"),
        make_finding(severity=Severity.CRITICAL, file="b.php", line=9, message="secret", category="security"),
        make_finding(severity=Severity.WARNING, file="a.php", line=4, message="debug call"),
        make_finding(severity=Severity.CRITICAL, file="a.php", line=2, message="eval", category="security"),
        make_finding(
            analyzer_id="slow",
            category="tooling",
            severity=Severity.WARNING,
            confidence=100,
            file="c.php",
            line=None,
            message="Analyzer 'slow' timed out: exceeded time limit of 50ms",
            synthetic=True,
        ),
    ]


def test_aggregate_orders_counts_and_gates(mixed_findings) -> None:
    report = aggregate(mixed_findings, run_id="r1", targets_count=3)

    assert [(finding.severity, finding.file, finding.line) for finding in report.findings] == [
        (Severity.CRITICAL, "a.php", 2),
        (Severity.CRITICAL, "b.php", 9),
        (Severity.WARNING, "a.php", 4),
        (Severity.WARNING, "c.php", None),
        (Severity.SUGGESTION, "b.php", 1),
    ]
    summary = report.summary
    assert (summary.critical, summary.warning, summary.suggestion) == (2, 2, 1)
    assert summary.tooling_errors == 1
    assert summary.categories == {"quality": 2, "security": 2, "tooling": 1}
    assert summary.new == 4
    assert not report.passed


def test_aggregate_is_pure_and_deduplicates(make_finding) -> None:
    low = make_finding(confidence=81)
    high = make_finding(confidence=95)

    first = aggregate([low, high], run_id="r", targets_count=1, positives=["b", "a", "b"], notices=["n", "n"])
    second = aggregate([low, high], run_id="r", targets_count=1, positives=["b", "a", "b"], notices=["n", "n"])

    assert first == second
    assert [finding.confidence for finding in first.findings] == [95]
    assert first.positive_findings == ("a", "b")
    assert first.notices == ("n",)


def test_tooling_findings_alone_never_fail(make_finding) -> None:
    tooling = make_finding(category="tooling", confidence=100, synthetic=True)

    report = aggregate([tooling], run_id="r", targets_count=1)

    assert report.passed
    assert report.summary.warning == 1
    assert report.tooling_findings == (tooling,)


def test_gate_policy_thresholds(make_finding) -> None:
    warnings = [make_finding(message=f"w{index}") for index in range(3)]

    assert GatePolicy().passes(warnings)
    assert not GatePolicy(fail_on=Severity.WARNING).passes(warnings)
    assert GatePolicy(max_warnings=3).passes(warnings)
    assert not GatePolicy(max_warnings=2).passes(warnings)


def test_render_text_lists_findings_by_severity(mixed_findings) -> None:
    report = aggregate(mixed_findings, run_id="r1", targets_count=3, positives=["CSRF ok"], notices=["note"])

    text = render_text(report)

    assert text.startswith("Review r1: FAILED\n")
    assert "Critical issues (2)" in text
    assert "  a.php:2  eval  [needle, confidence 85]" in text
    assert "Positive findings\n  + CSRF ok" in text
    assert "Notices\n  - note" in text


def test_render_markdown_has_summary_table(mixed_findings) -> None:
    report = aggregate(mixed_findings, run_id="r1", targets_count=3)

    markdown = render_markdown(report)

    assert markdown.startswith("# Code review report\n")
    assert "| 2 | 2 | 1 | 1 | 4 |" in markdown
    assert "## Critical issues" in markdown
    assert "## Suggestions" in markdown


def test_render_json_round_trips_payload(mixed_findings) -> None:
    report = aggregate(mixed_findings, run_id="r1", targets_count=3)

    payload = json.loads(render(report, "json"))

    assert payload == report.to_payload()


def test_unknown_format_raises() -> None:
    with pytest.raises(ReportRenderError, match="unknown format"):
        render(Report(run_id="r", targets_count=0), "yaml")


def test_failing_renderer_falls_back_to_json() -> None:
    def broken(report: Report) -> str:
        raise ValueError("template missing")

    report = Report(run_id="r", targets_count=0)

    rendered = render_report(report, "fancy", renderers={"fancy": broken})

    assert rendered.fell_back
    assert rendered.output_format == "json"
    assert "template missing" in (rendered.fallback_reason or "")
    assert json.loads(rendered.content)["run_id"] == "r"


def test_history_marks_and_updates(tmp_path: Path, make_finding) -> None:
    history_path = tmp_path / "state" / "history.json"
    old = make_finding(message="old")
    fresh = make_finding(message="fresh")
    tooling = make_finding(category="tooling", message="tooling", synthetic=True)
    history_path.parent.mkdir()
    history_path.write_text(json.dumps([old.id]), encoding="utf-8")

    history = FindingHistory(history_path)
    marked = history.mark([old, fresh])
    history.update(aggregate([*marked, tooling], run_id="r", targets_count=1))

    assert [finding.previously_reported for finding in marked] == [True, False]
    assert json.loads(history_path.read_text(encoding="utf-8")) == sorted({old.id, fresh.id})


def test_history_missing_file_is_empty(tmp_path: Path) -> None:
    assert FindingHistory(tmp_path / "none.json").load() == frozenset()


def test_corrupt_history_raises(tmp_path: Path) -> None:
    corrupt = tmp_path / "history.json"
    corrupt.write_text('{"ids": 1}', encoding="utf-8")

    with pytest.raises(ConfigError):
        FindingHistory(corrupt).load()
