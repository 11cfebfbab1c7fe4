# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Normalise raw analyzer output into findings."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..analyzers.base import AnalyzerDefinition, FindingDraft
from ..analyzers.registry import AnalyzerRegistry
from ..core.models import MARKER_ERROR, MARKER_TIMEOUT, TOOLING_CATEGORY, Finding, RawResult
from ..core.severity import Severity, severity_from_label


@dataclass(frozen=True, slots=True)
class CollectedFindings:
    """Findings and positive observations produced from a runner batch."""

    findings: tuple[Finding, ...]
    positive_findings: tuple[str, ...] = ()

    @property
    def tooling(self) -> tuple[Finding, ...]:
        """Return synthetic findings generated for analyzer failures."""
        return tuple(finding for finding in self.findings if finding.is_tooling)


def tooling_finding(raw: RawResult) -> Finding:
    """Return the synthetic tooling finding describing a failed invocation.

    Args:
        raw: Result carrying an ``analyzer_timeout`` or ``analyzer_error`` marker.

    Returns:
        Finding: Warning-level finding in the ``tooling`` category.
    """

    if raw.marker == MARKER_TIMEOUT:
        message = f"Analyzer '{raw.analyzer_id}' timed out: {raw.error or 'time limit exceeded'}"
        fix = "Raise the analyzer timeout or investigate why it is slow on this file."
    else:
        message = f"Analyzer '{raw.analyzer_id}' failed: {raw.error or 'unknown error'}"
        fix = "Check that the analyzer and the tools it depends on are installed and working."
    return Finding.create(
        analyzer_id=raw.analyzer_id,
        category=TOOLING_CATEGORY,
        severity=Severity.WARNING,
        confidence=100,
        file=raw.target_path,
        message=message,
        suggested_fix=fix,
        synthetic=True,
    )


class FindingCollector:
    """Turn :class:`RawResult` objects into normalised :class:`Finding` objects.

    Each analyzer's ``parse`` callable owns the translation from its native
    output into :class:`FindingDraft` objects. The collector fills in the
    defaults the analyzer declared (category, severity, confidence) and
    replaces failed invocations with exactly one tooling finding.
    """

    def __init__(self, registry: AnalyzerRegistry, *, debug_logger: Callable[[str], None] | None = None) -> None:
        self._registry = registry
        self._debug_logger = debug_logger

    def collect(self, results: Iterable[RawResult]) -> CollectedFindings:
        """Collect findings from ``results`` preserving their order.

        Args:
            results: Raw results, normally a sorted runner batch.

        Returns:
            CollectedFindings: Pending findings plus positive observations.
        """

        findings: list[Finding] = []
        positives: set[str] = set()
        for raw in results:
            analyzer = self._registry.try_get(raw.analyzer_id)
            if raw.failed:
                findings.append(tooling_finding(raw))
                continue
            if analyzer is None:
                findings.append(tooling_finding(_as_error(raw, "analyzer is not registered")))
                continue
            try:
                drafts = list(analyzer.parse(raw))
                normalised = [self._normalise(analyzer, raw, draft) for draft in drafts]
                observed = list(analyzer.observe(raw)) if analyzer.observe is not None else []
            except Exception as exc:  # parser faults become tooling findings
                if self._debug_logger:
                    self._debug_logger(f"parser for {raw.analyzer_id} failed on {raw.target_path}: {exc!r}")
                findings.append(tooling_finding(_as_error(raw, f"output could not be parsed: {exc}")))
                continue
            findings.extend(normalised)
            positives.update(message.strip() for message in observed if message.strip())
        return CollectedFindings(findings=tuple(findings), positive_findings=tuple(sorted(positives)))

    @staticmethod
    def _normalise(analyzer: AnalyzerDefinition, raw: RawResult, draft: FindingDraft) -> Finding:
        confidence = draft.confidence if draft.confidence is not None else analyzer.base_confidence
        return Finding.create(
            analyzer_id=analyzer.id,
            category=draft.category or analyzer.category,
            severity=severity_from_label(draft.severity, default=analyzer.default_severity),
            confidence=confidence,
            file=(draft.file or raw.target_path).replace("\\", "/"),
            line=draft.line,
            message=draft.message.strip(),
            evidence_snippet=draft.evidence,
            suggested_fix=draft.fix,
        )


def _as_error(raw: RawResult, detail: str) -> RawResult:
    return raw.model_copy(update={"marker": MARKER_ERROR, "error": detail})


__all__ = ["CollectedFindings", "FindingCollector", "tooling_finding"]
