# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Concurrent execution of analyzers with per-invocation time boxes."""

from __future__ import annotations

import subprocess  # nosec B404 - only referenced for TimeoutExpired
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Final

from ..analyzers.base import AnalyzerDefinition, RawPayload, coerce_raw_result, time_budget
from ..analyzers.registry import AnalyzerRegistry
from ..config import DEFAULT_ANALYZER_TIMEOUT_MS, DEFAULT_GRACE_PERIOD_S, default_parallel_jobs
from ..core.models import MARKER_ERROR, MARKER_TIMEOUT, RawResult, Target
from ..errors import AnalyzerExecutionError, AnalyzerTimeoutError

DEFAULT_POLL_INTERVAL_S: Final[float] = 0.05

TimeoutResolver = Callable[[AnalyzerDefinition], int]
Clock = Callable[[], float]


@dataclass(slots=True)
class CancellationToken:
    """Cooperative cancellation flag shared by the orchestrator and the runner."""

    _event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        """Request cancellation; no new work is scheduled afterwards."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has been called."""
        return self._event.is_set()


@dataclass(frozen=True, slots=True)
class WorkItem:
    """One ``(analyzer, target)`` invocation scheduled on the worker pool."""

    analyzer: AnalyzerDefinition
    target: Target
    timeout_ms: int


@dataclass(frozen=True, slots=True)
class RunnerBatch:
    """Results of a batch after the barrier join, in deterministic order."""

    results: tuple[RawResult, ...]
    scheduled: int = 0
    skipped: int = 0
    incomplete: bool = False


def timeout_result(item: WorkItem) -> RawResult:
    """Return the synthetic result recorded when ``item`` exceeds its time box."""

    return RawResult(
        analyzer_id=item.analyzer.id,
        target_path=item.target.path,
        marker=MARKER_TIMEOUT,
        error=f"exceeded time limit of {item.timeout_ms}ms",
        duration_ms=item.timeout_ms,
    )


def error_result(analyzer_id: str, target: Target, exc: BaseException) -> RawResult:
    """Return the synthetic result recorded when an analyzer crashes."""

    detail = exc.detail if isinstance(exc, AnalyzerExecutionError) else f"{type(exc).__name__}: {exc}"
    return RawResult(
        analyzer_id=analyzer_id,
        target_path=target.path,
        marker=MARKER_ERROR,
        error=detail,
    )


@dataclass(slots=True)
class _CallOutcome:
    payload: RawPayload = None
    error: Exception | None = None
    finished: threading.Event = field(default_factory=threading.Event)


class AnalyzerRunner:
    """Execute applicable analyzers concurrently over the resolved targets.

    Each ``(analyzer, target)`` pair is an independent unit of work on a bounded
    :class:`~concurrent.futures.ThreadPoolExecutor`. The worker runs the
    analyzer on a watchdog thread so that a slow analyzer yields an
    ``analyzer_timeout`` marker instead of holding up the batch, and any
    exception becomes an ``analyzer_error`` marker.
    """

    def __init__(
        self,
        registry: AnalyzerRegistry,
        *,
        parallelism: int | None = None,
        timeout_resolver: TimeoutResolver | None = None,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        debug_logger: Callable[[str], None] | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Create a runner bound to ``registry``.

        Args:
            registry: Analyzer registry; read-only for the duration of a run.
            parallelism: Maximum number of concurrent workers (defaults to the CPU count).
            timeout_resolver: Callable returning the time box in milliseconds for an analyzer.
            grace_period_s: Time in-flight work may take to finish after cancellation.
            poll_interval_s: Interval used to check for cancellation while waiting.
            debug_logger: Optional callable receiving debug messages.
            clock: Monotonic clock, replaceable in tests.
        """

        if parallelism is not None and parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        self._registry = registry
        self._parallelism = parallelism or default_parallel_jobs()
        self._timeout_resolver = timeout_resolver or _declared_timeout
        self._grace_period_s = grace_period_s
        self._poll_interval_s = poll_interval_s
        self._debug_logger = debug_logger
        self._clock = clock

    @property
    def parallelism(self) -> int:
        """Return the maximum number of concurrent workers."""
        return self._parallelism

    def plan(self, targets: Sequence[Target]) -> tuple[list[WorkItem], list[RawResult]]:
        """Return work items for applicable pairs plus markers for failing predicates.

        Args:
            targets: Targets resolved for the run.

        Returns:
            tuple[list[WorkItem], list[RawResult]]: Scheduled work and synthetic
            ``analyzer_error`` results for pairs whose ``applies_to`` raised.
        """

        items: list[WorkItem] = []
        failures: list[RawResult] = []
        for analyzer in self._registry.analyzers():
            for target in targets:
                try:
                    applicable = bool(analyzer.applies_to(target))
                except Exception as exc:  # analyzer faults must not abort the run
                    failures.append(error_result(analyzer.id, target, exc))
                    continue
                if applicable:
                    items.append(WorkItem(analyzer, target, self._timeout_resolver(analyzer)))
        return items, failures

    def run(
        self,
        targets: Sequence[Target],
        *,
        cancel: CancellationToken | None = None,
        deadline: float | None = None,
    ) -> RunnerBatch:
        """Execute every applicable pair and return the joined batch.

        Args:
            targets: Targets resolved for the run.
            cancel: Optional cancellation token observed while waiting.
            deadline: Optional clock value after which the batch is cut short.

        Returns:
            RunnerBatch: Results sorted by ``(analyzer_id, target_path)``. When
            cancelled or past the deadline the batch is flagged ``incomplete``.
        """

        items, results = self.plan(targets)
        token = cancel or CancellationToken()
        self._debug(f"runner scheduled={len(items)} parallelism={self._parallelism}")
        if not items:
            return RunnerBatch(results=_ordered(results), scheduled=0)

        executor = ThreadPoolExecutor(
            max_workers=min(self._parallelism, len(items)),
            thread_name_prefix="reviewgate-worker",
        )
        incomplete = False
        skipped = 0
        try:
            futures: dict[Future[RawResult], WorkItem] = {executor.submit(self._invoke, item): item for item in items}
            pending: set[Future[RawResult]] = set(futures)
            while pending:
                if token.cancelled or self._expired(deadline):
                    incomplete = True
                    break
                done, pending = wait(pending, timeout=self._poll_interval_s, return_when=FIRST_COMPLETED)
                results.extend(_harvest(future, futures[future]) for future in done)
            if incomplete:
                for future in pending:
                    future.cancel()
                running = {future for future in pending if not future.cancelled()}
                finished, _abandoned = wait(running, timeout=self._grace_period_s)
                results.extend(_harvest(future, futures[future]) for future in finished)
                skipped = len(pending) - len(finished)
                self._debug(f"runner cancelled skipped={skipped}")
        finally:
            executor.shutdown(wait=not incomplete, cancel_futures=True)
        return RunnerBatch(results=_ordered(results), scheduled=len(items), skipped=skipped, incomplete=incomplete)

    def _invoke(self, item: WorkItem) -> RawResult:
        """Run ``item`` on a watchdog thread honouring its time box."""

        outcome = _CallOutcome()

        def call() -> None:
            try:
                with time_budget(item.timeout_ms):
                    outcome.payload = item.analyzer.run(item.target)
            except Exception as exc:  # captured and reported as a marker
                outcome.error = exc
            finally:
                outcome.finished.set()

        started = self._clock()
        watchdog = threading.Thread(target=call, name=f"reviewgate-{item.analyzer.id}", daemon=True)
        watchdog.start()
        if not outcome.finished.wait(item.timeout_ms / 1000):
            self._debug(f"analyzer={item.analyzer.id} target={item.target.path} timed out")
            return timeout_result(item)
        duration_ms = int((self._clock() - started) * 1000)
        if isinstance(outcome.error, (AnalyzerTimeoutError, subprocess.TimeoutExpired)):
            return timeout_result(item)
        if outcome.error is not None:
            self._debug(f"analyzer={item.analyzer.id} target={item.target.path} error={outcome.error!r}")
            return error_result(item.analyzer.id, item.target, outcome.error)
        try:
            return coerce_raw_result(item.analyzer.id, item.target, outcome.payload, duration_ms=duration_ms)
        except (TypeError, ValueError) as exc:
            return error_result(item.analyzer.id, item.target, exc)

    def _expired(self, deadline: float | None) -> bool:
        return deadline is not None and self._clock() >= deadline

    def _debug(self, message: str) -> None:
        if self._debug_logger:
            self._debug_logger(message)


def _declared_timeout(analyzer: AnalyzerDefinition) -> int:
    return analyzer.timeout_ms if analyzer.timeout_ms is not None else DEFAULT_ANALYZER_TIMEOUT_MS


def _harvest(future: Future[RawResult], item: WorkItem) -> RawResult:
    exc = future.exception()
    if exc is not None:
        return error_result(item.analyzer.id, item.target, exc)
    return future.result()


def _ordered(results: Sequence[RawResult]) -> tuple[RawResult, ...]:
    return tuple(sorted(results, key=lambda result: result.sort_key))


__all__ = [
    "AnalyzerRunner",
    "CancellationToken",
    "RunnerBatch",
    "WorkItem",
    "error_result",
    "timeout_result",
]
