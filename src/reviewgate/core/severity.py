# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from enum import Enum
from typing import Final


class Severity(str, Enum):
    """Severity levels normalising different analyzer vocabularies."""

    CRITICAL = "critical"
    WARNING = "warning"
    SUGGESTION = "suggestion"


SEVERITY_RANK: Final[dict[Severity, int]] = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.SUGGESTION: 2,
}

_LABEL_ALIASES: Final[dict[str, Severity]] = {
    "critical": Severity.CRITICAL,
    "error": Severity.CRITICAL,
    "fatal": Severity.CRITICAL,
    "high": Severity.CRITICAL,
    "blocker": Severity.CRITICAL,
    "warning": Severity.WARNING,
    "warn": Severity.WARNING,
    "medium": Severity.WARNING,
    "suggestion": Severity.SUGGESTION,
    "info": Severity.SUGGESTION,
    "notice": Severity.SUGGESTION,
    "note": Severity.SUGGESTION,
    "low": Severity.SUGGESTION,
    "hint": Severity.SUGGESTION,
}


def severity_from_label(label: Severity | str | None, default: Severity = Severity.WARNING) -> Severity:
    """Normalise an analyzer supplied severity label.

    Args:
        label: Severity enum, free-form label, or ``None``.
        default: Severity returned when ``label`` is missing or unknown.

    Returns:
        Severity: Canonical severity for ``label``.
    """

    if label is None:
        return default
    if isinstance(label, Severity):
        return label
    return _LABEL_ALIASES.get(str(label).strip().lower(), default)


def is_at_least(severity: Severity, threshold: Severity) -> bool:
    """Return ``True`` when ``severity`` is as severe as ``threshold`` or more."""

    return SEVERITY_RANK[severity] <= SEVERITY_RANK[threshold]


def clamp_severity(original: Severity, proposed: Severity) -> Severity:
    """Return the less severe of ``original`` and ``proposed``.

    Validation may keep or lower a severity but never raise it above what the
    originating analyzer emitted.

    Args:
        original: Severity assigned by the analyzer at emission time.
        proposed: Severity requested by a later pipeline stage.

    Returns:
        Severity: ``proposed`` unless it would escalate ``original``.
    """

    if SEVERITY_RANK[proposed] < SEVERITY_RANK[original]:
        return original
    return proposed


def severity_sort_key(severity: Severity) -> int:
    """Return the sort rank for ``severity`` (most severe first)."""

    return SEVERITY_RANK.get(severity, len(SEVERITY_RANK))


__all__ = [
    "SEVERITY_RANK",
    "Severity",
    "clamp_severity",
    "is_at_least",
    "severity_from_label",
    "severity_sort_key",
]
