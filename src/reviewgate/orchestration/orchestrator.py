# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Drive a review run from target resolution to the final report."""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Final

from ..analyzers.base import AnalyzerDefinition
from ..analyzers.registry import AnalyzerRegistry
from ..config import Config, RunMode
from ..core.models import Report
from ..discovery.targets import TargetRequest, TargetResolver
from ..errors import ConfigError
from ..execution.collector import FindingCollector
from ..execution.runner import AnalyzerRunner, CancellationToken, RunnerBatch
from ..reporting.aggregator import GatePolicy, aggregate
from ..reporting.history import FindingHistory
from ..validation.pipeline import RejectedFinding, ValidationPipeline
from ..validation.rules import RuleCatalog

EXIT_OK: Final[int] = 0
EXIT_WARNINGS: Final[int] = 1
EXIT_BLOCKED: Final[int] = 2

RunnerFactory = Callable[[AnalyzerRegistry, Config], AnalyzerRunner]
Clock = Callable[[], datetime]


class RunPhase(str, Enum):
    """States an orchestration run moves through, in order."""

    IDLE = "idle"
    RESOLVING_TARGETS = "resolving_targets"
    RUNNING_ANALYZERS = "running_analyzers"
    COLLECTING = "collecting"
    VALIDATING = "validating"
    AGGREGATING = "aggregating"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class OrchestratorHooks:
    """Optional callbacks invoked around orchestration phases."""

    on_phase: Callable[[RunPhase], None] | None = None
    after_discovery: Callable[[int], None] | None = None
    after_execution: Callable[[RunnerBatch], None] | None = None


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Report produced by a run together with the process exit code."""

    report: Report
    exit_code: int
    phases: tuple[RunPhase, ...] = ()
    rejected: tuple[RejectedFinding, ...] = ()


def exit_code_for(report: Report, mode: RunMode) -> int:
    """Return the process exit code for ``report`` under ``mode``.

    ``warn-only`` always succeeds. Otherwise a failed report exits with 2; a
    passing report with warnings, tooling errors, or an incomplete run exits
    with 1; a clean report exits with 0.
    """

    if mode == "warn-only":
        return EXIT_OK
    if not report.passed:
        return EXIT_BLOCKED
    if report.incomplete or report.summary.warning > 0:
        return EXIT_WARNINGS
    return EXIT_OK


def summary_line(report: Report) -> str:
    """Return a one-line human summary of ``report``."""

    summary = report.summary
    caveats: list[str] = []
    if summary.tooling_errors:
        caveats.append("tooling errors occurred - results may be incomplete")
    if report.incomplete:
        caveats.append("run was cancelled before every analyzer finished")
    suffix = f" ({'; '.join(caveats)})" if caveats else ""
    if not report.passed:
        if summary.critical:
            return f"Review blocked by {summary.critical} critical finding(s){suffix}"
        return f"Review blocked by the gate policy with {summary.warning} warning(s){suffix}"
    if caveats:
        return f"Review passed, but {'; '.join(caveats)}"
    if summary.warning or summary.suggestion:
        return f"Review passed with {summary.warning} warning(s) and {summary.suggestion} suggestion(s)"
    return "Review passed: no issues found"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Orchestrator:
    """Coordinate target resolution, analyzer execution, validation and reporting.

    A run only ever fails outright when its targets cannot be resolved; every
    other problem is turned into a finding or a notice on the report.
    """

    def __init__(
        self,
        registry: AnalyzerRegistry,
        catalog: RuleCatalog,
        config: Config | None = None,
        *,
        root: Path | None = None,
        resolver: TargetResolver | None = None,
        runner_factory: RunnerFactory | None = None,
        history: FindingHistory | None = None,
        hooks: OrchestratorHooks | None = None,
        clock: Clock | None = None,
        debug_logger: Callable[[str], None] | None = None,
    ) -> None:
        """Create an orchestrator with the supplied collaborators.

        Args:
            registry: Analyzers available to the run.
            catalog: Validation rules applied to collected findings.
            config: Run configuration; defaults are used when omitted.
            root: Project root used when no ``resolver`` is supplied.
            resolver: Target resolver, replaced in tests.
            runner_factory: Callable building the analyzer runner.
            history: Optional store of previously reported finding ids.
            hooks: Optional lifecycle callbacks.
            clock: Callable returning the timestamp recorded on reports.
            debug_logger: Optional callable receiving debug messages.
        """

        self._registry = registry
        self._catalog = catalog
        self._config = config or Config()
        self._root = root
        self._resolver = resolver
        self._runner_factory = runner_factory or self._default_runner
        self._history = history
        self._hooks = hooks or OrchestratorHooks()
        self._clock = clock or _utc_now
        self._debug_logger = debug_logger
        self._phases: list[RunPhase] = [RunPhase.IDLE]

    @property
    def phases(self) -> tuple[RunPhase, ...]:
        """Return the phases visited by the most recent run."""
        return tuple(self._phases)

    def _debug(self, message: str) -> None:
        if self._debug_logger:
            self._debug_logger(message)

    def _enter(self, phase: RunPhase) -> None:
        self._phases.append(phase)
        self._debug(f"phase={phase.value}")
        if self._hooks.on_phase:
            self._hooks.on_phase(phase)

    def _default_runner(self, registry: AnalyzerRegistry, config: Config) -> AnalyzerRunner:
        def timeout_for(analyzer: AnalyzerDefinition) -> int:
            return config.timeout_for(analyzer.id, analyzer.timeout_ms)

        return AnalyzerRunner(
            registry,
            parallelism=config.execution.parallel,
            timeout_resolver=timeout_for,
            grace_period_s=config.execution.grace_period_s,
            debug_logger=self._debug_logger,
        )

    def _active_registry(self, notices: list[str]) -> AnalyzerRegistry:
        disabled = self._config.execution.disabled
        unknown = sorted(set(disabled) - set(self._registry))
        if unknown:
            notices.append(f"Ignoring unknown analyzer(s) in disabled list: {', '.join(unknown)}")
        known = [analyzer_id for analyzer_id in disabled if analyzer_id in self._registry]
        registry = self._registry.without(known) if known else self._registry
        return registry.freeze()

    def run(self, request: TargetRequest, *, cancel: CancellationToken | None = None) -> RunOutcome:
        """Execute one review run.

        Args:
            request: Files to review.
            cancel: Optional token; once cancelled no new analyzers start and the
                report is marked incomplete.

        Returns:
            RunOutcome: Final report, exit code and visited phases.

        Raises:
            TargetResolutionError: If the targets cannot be determined.
        """

        self._phases = [RunPhase.IDLE]
        notices: list[str] = list(self._catalog.notices)
        registry = self._active_registry(notices)

        self._enter(RunPhase.RESOLVING_TARGETS)
        resolver = self._resolver or TargetResolver(self._root or Path.cwd())
        targets = resolver.resolve(request)
        self._debug(f"resolved targets={len(targets)} root={resolver.root}")
        if self._hooks.after_discovery:
            self._hooks.after_discovery(len(targets))

        self._enter(RunPhase.RUNNING_ANALYZERS)
        run_timeout = self._config.execution.run_timeout_s
        deadline = time.monotonic() + run_timeout if run_timeout is not None else None
        batch = self._runner_factory(registry, self._config).run(targets, cancel=cancel, deadline=deadline)
        if batch.incomplete:
            notices.append(f"Run stopped early; {batch.skipped} analyzer invocation(s) did not complete")
        if self._hooks.after_execution:
            self._hooks.after_execution(batch)

        self._enter(RunPhase.COLLECTING)
        collected = FindingCollector(registry, debug_logger=self._debug_logger).collect(batch.results)

        self._enter(RunPhase.VALIDATING)
        pipeline = ValidationPipeline(
            self._catalog,
            min_confidence=self._config.validation.min_confidence,
            root=resolver.root,
            debug_logger=self._debug_logger,
        )
        validated = pipeline.validate(collected.findings)
        notices.extend(validated.notices)
        findings = validated.kept
        if self._history is not None:
            try:
                findings = self._history.mark(findings)
            except ConfigError as exc:
                notices.append(str(exc))

        self._enter(RunPhase.AGGREGATING)
        report = aggregate(
            findings,
            run_id=uuid.uuid4().hex[:12],
            targets_count=len(targets),
            positives=collected.positive_findings,
            policy=GatePolicy.from_config(self._config.gate),
            incomplete=batch.incomplete,
            notices=notices,
            generated_at=self._clock().isoformat(timespec="seconds"),
        )
        if self._history is not None and self._config.output.update_history:
            try:
                self._history.update(report)
            except (ConfigError, OSError) as exc:
                self._debug(f"history update failed: {exc}")
                report = report.model_copy(update={"notices": (*report.notices, f"History not updated: {exc}")})

        self._enter(RunPhase.PASSED if report.passed else RunPhase.FAILED)
        return RunOutcome(
            report=report,
            exit_code=exit_code_for(report, self._config.gate.mode),
            phases=self.phases,
            rejected=validated.rejected,
        )


__all__ = [
    "EXIT_BLOCKED",
    "EXIT_OK",
    "EXIT_WARNINGS",
    "Orchestrator",
    "OrchestratorHooks",
    "RunOutcome",
    "RunPhase",
    "RunnerFactory",
    "exit_code_for",
    "summary_line",
]
