# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Definitions for pluggable analyzers and their raw output."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.models import RawResult, Target
from ..core.severity import Severity


class ConfidenceHint(str, Enum):
    """Declared reliability of an analyzer's detection technique."""

    EXACT = "exact"
    PATTERN = "pattern"
    HEURISTIC = "heuristic"
    CONTEXTUAL = "contextual"


BASE_CONFIDENCE: Final[dict[ConfidenceHint, int]] = {
    ConfidenceHint.EXACT: 95,
    ConfidenceHint.PATTERN: 85,
    ConfidenceHint.HEURISTIC: 70,
    ConfidenceHint.CONTEXTUAL: 60,
}


class FindingDraft(BaseModel):
    """Intermediate finding that resembles analyzer-native structure."""

    model_config = ConfigDict(frozen=True)

    message: str
    line: int | None = None
    file: str | None = None
    severity: Severity | str | None = None
    category: str | None = None
    confidence: int | None = None
    evidence: str = ""
    fix: str | None = None

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: object) -> object:
        """Accept numeric strings and treat non-positive lines as unknown."""
        if value is None or value == "":
            return None
        line = int(str(value))
        return line if line > 0 else None


RawPayload: TypeAlias = RawResult | Iterable[str] | Iterable[Mapping[str, Any]] | None
AppliesTo: TypeAlias = Callable[[Target], bool]
RunCallable: TypeAlias = Callable[[Target], RawPayload]
ParseCallable: TypeAlias = Callable[[RawResult], Sequence[FindingDraft]]
ObserveCallable: TypeAlias = Callable[[RawResult], Sequence[str]]


@dataclass(frozen=True, slots=True)
class AnalyzerDefinition:
    """Pluggable check: applicability predicate, invocation, and parser.

    The engine only ever calls ``applies_to``, ``run`` (under a time box),
    ``parse`` and the optional ``observe`` hook that reports positive
    observations.
    """

    id: str
    name: str
    category: str
    applies_to: AppliesTo
    run: RunCallable
    parse: ParseCallable
    timeout_ms: int | None = None
    confidence_hint: ConfidenceHint = ConfidenceHint.PATTERN
    default_severity: Severity = Severity.WARNING
    observe: ObserveCallable | None = None
    description: str = ""

    @property
    def base_confidence(self) -> int:
        """Return the initial confidence implied by :attr:`confidence_hint`."""
        return BASE_CONFIDENCE[self.confidence_hint]


_TIME_BUDGET_MS: ContextVar[int | None] = ContextVar("reviewgate_time_budget_ms", default=None)


@contextmanager
def time_budget(timeout_ms: int) -> Iterator[None]:
    """Expose ``timeout_ms`` to analyzers invoked inside the block.

    The runner resolves each invocation's time box from configuration; analyzers
    that spawn subprocesses read it through :func:`current_time_budget_ms` so the
    child is killed no later than the runner abandons the call.
    """

    token = _TIME_BUDGET_MS.set(timeout_ms)
    try:
        yield
    finally:
        _TIME_BUDGET_MS.reset(token)


def current_time_budget_ms() -> int | None:
    """Return the time box of the invocation running in this context, if any."""
    return _TIME_BUDGET_MS.get()


def coerce_raw_result(analyzer_id: str, target: Target, payload: RawPayload, *, duration_ms: int = 0) -> RawResult:
    """Normalise whatever ``run`` returned into a :class:`RawResult`.

    Args:
        analyzer_id: Identifier of the analyzer that produced ``payload``.
        target: Target the analyzer inspected.
        payload: A ready :class:`RawResult`, text lines, structured records, or ``None``.
        duration_ms: Wall time spent in the invocation.

    Returns:
        RawResult: Result bound to ``analyzer_id`` and ``target``.

    Raises:
        TypeError: If ``payload`` mixes text lines and records.
    """

    if isinstance(payload, RawResult):
        return payload.model_copy(
            update={"analyzer_id": analyzer_id, "target_path": target.path, "duration_ms": duration_ms}
        )
    if payload is None:
        items: list[Any] = []
    elif isinstance(payload, str):
        items = payload.splitlines()
    else:
        items = list(payload)
    lines = tuple(str(item) for item in items if isinstance(item, str))
    records = tuple(dict(item) for item in items if isinstance(item, Mapping))
    if len(lines) + len(records) != len(items):
        raise TypeError(f"analyzer '{analyzer_id}' returned unsupported output items")
    if lines and records:
        raise TypeError(f"analyzer '{analyzer_id}' mixed text lines and records in one result")
    return RawResult(
        analyzer_id=analyzer_id,
        target_path=target.path,
        lines=lines,
        records=records,
        duration_ms=duration_ms,
    )


__all__ = [
    "BASE_CONFIDENCE",
    "AnalyzerDefinition",
    "AppliesTo",
    "ConfidenceHint",
    "FindingDraft",
    "ObserveCallable",
    "ParseCallable",
    "RawPayload",
    "RunCallable",
    "coerce_raw_result",
    "current_time_budget_ms",
    "time_budget",
]
