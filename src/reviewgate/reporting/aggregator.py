# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pure aggregation of validated findings into an immutable report."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from ..config import GateConfig
from ..core.models import Finding, Report, ReportSummary
from ..core.severity import Severity, is_at_least, severity_sort_key


@dataclass(frozen=True, slots=True)
class GatePolicy:
    """Pass/fail policy applied to the validated findings."""

    fail_on: Severity = Severity.CRITICAL
    max_warnings: int | None = None

    @classmethod
    def from_config(cls, gate: GateConfig) -> GatePolicy:
        """Build a policy from the ``gate`` configuration section."""
        return cls(fail_on=gate.fail_on, max_warnings=gate.max_warnings)

    def blocks(self, finding: Finding) -> bool:
        """Return ``True`` when ``finding`` alone fails the run.

        Tooling findings never block; they only signal that results may be
        incomplete.
        """

        return not finding.is_tooling and is_at_least(finding.severity, self.fail_on)

    def passes(self, findings: Iterable[Finding]) -> bool:
        """Return ``True`` when ``findings`` satisfy the policy."""

        warnings = 0
        for finding in findings:
            if self.blocks(finding):
                return False
            if not finding.is_tooling and finding.severity is Severity.WARNING:
                warnings += 1
        return self.max_warnings is None or warnings <= self.max_warnings


def finding_sort_key(finding: Finding) -> tuple[int, str, int, str, str]:
    """Return the report ordering key: severity, file, line, analyzer, id."""

    line = finding.line if finding.line is not None else 0
    return (severity_sort_key(finding.severity), finding.file, line, finding.analyzer_id, finding.id)


def deduplicate(findings: Iterable[Finding]) -> list[Finding]:
    """Collapse findings sharing an id, keeping the most confident instance."""

    unique: dict[str, Finding] = {}
    for finding in findings:
        current = unique.get(finding.id)
        if current is None or finding.confidence > current.confidence:
            unique[finding.id] = finding
    return list(unique.values())


def summarise(findings: Iterable[Finding], *, passed: bool, incomplete: bool) -> ReportSummary:
    """Return severity and category counts for ``findings``."""

    items = list(findings)
    severities = Counter(finding.severity for finding in items)
    categories = Counter(finding.category for finding in items)
    return ReportSummary(
        critical=severities[Severity.CRITICAL],
        warning=severities[Severity.WARNING],
        suggestion=severities[Severity.SUGGESTION],
        categories=dict(sorted(categories.items())),
        tooling_errors=sum(1 for finding in items if finding.is_tooling),
        new=sum(1 for finding in items if not finding.is_tooling and not finding.previously_reported),
        passed=passed,
        incomplete=incomplete,
    )


def aggregate(
    findings: Iterable[Finding],
    *,
    run_id: str,
    targets_count: int,
    positives: Iterable[str] = (),
    policy: GatePolicy | None = None,
    incomplete: bool = False,
    notices: Iterable[str] = (),
    generated_at: str = "",
) -> Report:
    """Build the final :class:`Report` from validated findings.

    The function has no side effects; identical inputs produce identical
    reports.

    Args:
        findings: Validated findings, tooling findings included.
        run_id: Identifier of the orchestration run.
        targets_count: Number of targets that were analysed.
        positives: Positive observations reported by analyzers.
        policy: Gate policy; defaults to failing on critical findings.
        incomplete: Whether the run was cut short.
        notices: Non-fatal messages collected during the run.
        generated_at: Timestamp recorded in the report.

    Returns:
        Report: Immutable report with findings in display order.
    """

    gate = policy or GatePolicy()
    ordered = tuple(sorted(deduplicate(findings), key=finding_sort_key))
    passed = gate.passes(ordered)
    return Report(
        run_id=run_id,
        targets_count=targets_count,
        findings=ordered,
        summary=summarise(ordered, passed=passed, incomplete=incomplete),
        positive_findings=tuple(sorted(set(positives))),
        passed=passed,
        incomplete=incomplete,
        notices=tuple(dict.fromkeys(notices)),
        generated_at=generated_at,
    )


__all__ = ["GatePolicy", "aggregate", "deduplicate", "finding_sort_key", "summarise"]
