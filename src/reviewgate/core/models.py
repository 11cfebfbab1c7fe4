# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the reviewgate package."""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from pathlib import Path
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .severity import Severity

TOOLING_CATEGORY: Final[str] = "tooling"
MARKER_TIMEOUT: Final[str] = "analyzer_timeout"
MARKER_ERROR: Final[str] = "analyzer_error"
_ID_SEPARATOR: Final[str] = "\x1f"
_ID_LENGTH: Final[int] = 16

RawMarker = Literal["analyzer_timeout", "analyzer_error"]


class ChangeKind(str, Enum):
    """How a target changed relative to the reviewed baseline."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class FindingStatus(str, Enum):
    """Lifecycle status assigned to findings by the validation pipeline."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    DOWNGRADED = "downgraded"


class Target(BaseModel):
    """Single file under review within one orchestration run.

    ``staged`` is set only for targets taken from the git index, i.e. files
    about to be committed.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    root: Path
    change_kind: ChangeKind = ChangeKind.MODIFIED
    language: str = "unknown"
    staged: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def _normalise_path(cls, value: object) -> object:
        """Store target paths as POSIX strings relative to the run root."""
        if isinstance(value, Path):
            return value.as_posix()
        return value

    @property
    def absolute_path(self) -> Path:
        """Return the absolute filesystem path of the target."""
        return self.root / self.path

    @property
    def exists(self) -> bool:
        """Return ``True`` when the target file is present on disk."""
        return self.change_kind is not ChangeKind.DELETED and self.absolute_path.is_file()

    def read_text(self) -> str:
        """Return the target contents decoded as UTF-8 (invalid bytes replaced)."""
        return self.absolute_path.read_text(encoding="utf-8", errors="replace")


class RawResult(BaseModel):
    """Unstructured analyzer output for one ``(analyzer, target)`` pair."""

    model_config = ConfigDict(frozen=True)

    analyzer_id: str
    target_path: str
    lines: tuple[str, ...] = Field(default_factory=tuple)
    records: tuple[dict[str, Any], ...] = Field(default_factory=tuple)
    marker: RawMarker | None = None
    error: str | None = None
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        """Return ``True`` when the result is a synthetic failure marker."""
        return self.marker is not None

    @property
    def sort_key(self) -> tuple[str, str]:
        """Deterministic ordering key used after the worker join."""
        return (self.analyzer_id, self.target_path)


def compute_finding_id(analyzer_id: str, file: str, line: int | None, message: str) -> str:
    """Return the stable identifier for a finding.

    Args:
        analyzer_id: Identifier of the analyzer that emitted the finding.
        file: Target-relative file path.
        line: Optional 1-based line number.
        message: Human-readable finding message.

    Returns:
        str: Truncated SHA-256 digest of the canonical finding signature.
    """

    signature = _ID_SEPARATOR.join((analyzer_id, file, "" if line is None else str(line), message.strip()))
    return hashlib.sha256(signature.encode("utf-8")).hexdigest()[:_ID_LENGTH]


class Finding(BaseModel):
    """Normalised, located issue report with severity and confidence."""

    model_config = ConfigDict(frozen=True)

    id: str
    analyzer_id: str
    category: str
    severity: Severity
    confidence: int = Field(ge=0, le=100)
    file: str
    line: int | None = None
    message: str
    evidence_snippet: str = ""
    suggested_fix: str | None = None
    status: FindingStatus = FindingStatus.PENDING
    base_confidence: int = Field(ge=0, le=100)
    original_severity: Severity
    applied_rules: tuple[str, ...] = Field(default_factory=tuple)
    synthetic: bool = False
    previously_reported: bool = False

    @classmethod
    def create(
        cls,
        *,
        analyzer_id: str,
        category: str,
        severity: Severity,
        confidence: int,
        file: str,
        message: str,
        line: int | None = None,
        evidence_snippet: str = "",
        suggested_fix: str | None = None,
        synthetic: bool = False,
    ) -> Finding:
        """Build a pending finding, computing its id and baseline values."""

        bounded = max(0, min(100, int(confidence)))
        return cls(
            id=compute_finding_id(analyzer_id, file, line, message),
            analyzer_id=analyzer_id,
            category=category,
            severity=severity,
            confidence=bounded,
            file=file,
            line=line,
            message=message,
            evidence_snippet=evidence_snippet,
            suggested_fix=suggested_fix,
            base_confidence=bounded,
            original_severity=severity,
            synthetic=synthetic,
        )

    @property
    def is_tooling(self) -> bool:
        """Return ``True`` for engine generated analyzer failure findings."""
        return self.synthetic and self.category == TOOLING_CATEGORY

    @property
    def location(self) -> str:
        """Return ``file:line`` (or just ``file``) for display purposes."""
        return self.file if self.line is None else f"{self.file}:{self.line}"

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serialisable representation used in reports."""
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category,
            "file": self.file,
            "line": self.line,
            "issue": self.message,
            "fix": self.suggested_fix,
            "confidence": self.confidence,
            "analyzer": self.analyzer_id,
            "status": self.status.value,
            "evidence": self.evidence_snippet,
            "new": not self.previously_reported,
        }


class ReportSummary(BaseModel):
    """Severity and category counts for a report."""

    model_config = ConfigDict(frozen=True)

    critical: int = 0
    warning: int = 0
    suggestion: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    tooling_errors: int = 0
    new: int = 0
    passed: bool = True
    incomplete: bool = False

    @property
    def total(self) -> int:
        """Return the total number of reported findings."""
        return self.critical + self.warning + self.suggestion

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serialisable summary mapping."""
        return {
            "critical": self.critical,
            "warning": self.warning,
            "suggestion": self.suggestion,
            "passed": self.passed,
            "incomplete": self.incomplete,
            "tooling_errors": self.tooling_errors,
            "new": self.new,
            "categories": dict(sorted(self.categories.items())),
        }


class Report(BaseModel):
    """Immutable result of a full orchestration run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    targets_count: int
    findings: tuple[Finding, ...] = Field(default_factory=tuple)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    positive_findings: tuple[str, ...] = Field(default_factory=tuple)
    passed: bool = True
    incomplete: bool = False
    notices: tuple[str, ...] = Field(default_factory=tuple)
    generated_at: str = ""

    @property
    def tooling_findings(self) -> tuple[Finding, ...]:
        """Return the synthetic tooling failures contained in the report."""
        return tuple(finding for finding in self.findings if finding.is_tooling)

    def to_payload(self) -> dict[str, Any]:
        """Return the structured report shared by every renderer."""
        return {
            "run_id": self.run_id,
            "generated_at": self.generated_at,
            "targets_count": self.targets_count,
            "summary": self.summary.to_payload(),
            "findings": [finding.to_payload() for finding in self.findings],
            "positive_findings": list(self.positive_findings),
            "notices": list(self.notices),
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        """Return the report serialised as JSON."""
        return json.dumps(self.to_payload(), indent=indent)


__all__ = [
    "MARKER_ERROR",
    "MARKER_TIMEOUT",
    "TOOLING_CATEGORY",
    "ChangeKind",
    "Finding",
    "FindingStatus",
    "RawMarker",
    "RawResult",
    "Report",
    "ReportSummary",
    "Target",
    "compute_finding_id",
]
