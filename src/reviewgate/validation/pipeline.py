# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Confidence scoring and false-positive filtering for collected findings."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from ..config import DEFAULT_MIN_CONFIDENCE
from ..core.models import Finding, FindingStatus
from ..core.severity import clamp_severity
from .context import ValidationContext
from .rules import RuleCatalog, RuleEffect

EVIDENCE_MISSING = "evidence not found at reported location"
FILE_MISSING = "file does not exist"


@dataclass(frozen=True, slots=True)
class RejectedFinding:
    """Finding removed by validation together with the reason."""

    finding: Finding
    reason: str


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Findings kept and rejected by a validation pass."""

    kept: tuple[Finding, ...]
    rejected: tuple[RejectedFinding, ...] = ()
    notices: tuple[str, ...] = ()


class ValidationPipeline:
    """Apply the existence check, the rule catalog and the confidence threshold.

    Each finding is scored from its ``base_confidence`` so running the
    pipeline again over its own output yields the same findings.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        *,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        root: Path | None = None,
        debug_logger: Callable[[str], None] | None = None,
    ) -> None:
        """Create a pipeline.

        Args:
            catalog: Rules applied in declaration order.
            min_confidence: Findings scoring below this value are dropped.
            root: Run root used to resolve finding paths (defaults to the cwd).
            debug_logger: Optional callable receiving debug messages.
        """

        if not 0 <= min_confidence <= 100:
            raise ValueError("min_confidence must be between 0 and 100")
        self._catalog = catalog
        self._min_confidence = min_confidence
        self._root = root or Path.cwd()
        self._debug_logger = debug_logger

    @property
    def min_confidence(self) -> int:
        """Return the minimum confidence a finding needs to be kept."""
        return self._min_confidence

    def validate(self, findings: Iterable[Finding], *, context: ValidationContext | None = None) -> ValidationOutcome:
        """Validate ``findings`` and return the surviving and rejected sets.

        Args:
            findings: Pending findings from the collector.
            context: Optional file access context; a fresh one is created when omitted.

        Returns:
            ValidationOutcome: Kept findings sorted by id, rejected findings and
            notices about rules that failed while matching.
        """

        ctx = context or ValidationContext(self._root)
        kept: list[Finding] = []
        rejected: list[RejectedFinding] = []
        failures: dict[str, tuple[str, int]] = {}

        for finding in findings:
            if finding.is_tooling:
                kept.append(finding.model_copy(update={"status": FindingStatus.VALIDATED}))
                continue
            verdict = self._validate_one(finding, ctx, failures)
            if isinstance(verdict, RejectedFinding):
                self._debug(f"rejected {finding.id} ({finding.analyzer_id}): {verdict.reason}")
                rejected.append(verdict)
            else:
                kept.append(verdict)

        notices = tuple(
            f"validation rule '{rule_id}' raised {detail}; skipped for {count} finding(s)"
            for rule_id, (detail, count) in sorted(failures.items())
        )
        return ValidationOutcome(
            kept=tuple(sorted(kept, key=lambda item: item.id)),
            rejected=tuple(sorted(rejected, key=lambda item: item.finding.id)),
            notices=notices,
        )

    def _validate_one(
        self,
        finding: Finding,
        context: ValidationContext,
        failures: dict[str, tuple[str, int]],
    ) -> Finding | RejectedFinding:
        if not context.exists(finding.file):
            return _reject(finding, FILE_MISSING)
        snippet = finding.evidence_snippet.strip()
        if snippet and not context.contains(finding.file, snippet, finding.line):
            return _reject(finding, EVIDENCE_MISSING)

        applied: list[str] = []
        delta = 0
        for rule in self._catalog.rules:
            try:
                matched = rule.matches(finding, context)
            except Exception as exc:  # a broken rule must not abort validation
                detail, count = failures.get(rule.id, (f"{type(exc).__name__}: {exc}", 0))
                failures[rule.id] = (detail, count + 1)
                continue
            if not matched:
                continue
            applied.append(rule.id)
            if rule.effect is RuleEffect.REJECT:
                return _reject(finding, f"matched rule '{rule.id}'", applied)
            delta += rule.delta

        confidence = max(0, min(100, finding.base_confidence + delta))
        if confidence < self._min_confidence:
            return _reject(
                finding,
                f"confidence {confidence} below minimum {self._min_confidence}",
                applied,
                confidence=confidence,
            )
        status = FindingStatus.DOWNGRADED if confidence < finding.base_confidence else FindingStatus.VALIDATED
        return finding.model_copy(
            update={
                "confidence": confidence,
                "status": status,
                "applied_rules": tuple(applied),
                "severity": clamp_severity(finding.original_severity, finding.severity),
            }
        )

    def _debug(self, message: str) -> None:
        if self._debug_logger:
            self._debug_logger(message)


def _reject(
    finding: Finding,
    reason: str,
    applied: list[str] | None = None,
    *,
    confidence: int | None = None,
) -> RejectedFinding:
    update: dict[str, object] = {"status": FindingStatus.REJECTED, "applied_rules": tuple(applied or ())}
    if confidence is not None:
        update["confidence"] = confidence
    return RejectedFinding(finding=finding.model_copy(update=update), reason=reason)


__all__ = ["EVIDENCE_MISSING", "FILE_MISSING", "RejectedFinding", "ValidationOutcome", "ValidationPipeline"]
