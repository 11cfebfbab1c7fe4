# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Analyzers backed by external commands (``php -l``, linters, scanners)."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Final

from ..config import DEFAULT_ANALYZER_TIMEOUT_MS
from ..core.models import RawResult, Target
from ..core.runtime.process import TIMEOUT_RETURNCODE, CommandOptions, run_command
from ..core.severity import Severity
from ..errors import AnalyzerExecutionError, AnalyzerTimeoutError
from .base import AnalyzerDefinition, AppliesTo, ConfidenceHint, FindingDraft, current_time_budget_ms

TARGET_PLACEHOLDER: Final[str] = "{target}"
CommandBuilder = Callable[[Target], Sequence[str]]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Describe how to invoke an external command and read its output.

    ``command`` items may contain ``{target}``, replaced by the target's
    absolute path; when no item does, the path is appended. ``pattern`` is
    matched against each output line and must define a ``message`` group; the
    optional ``line``, ``severity`` and ``fix`` groups are used when present.
    ``ok_returncodes`` lists exit statuses that mean "ran successfully" even
    when findings were emitted.
    """

    command: Sequence[str] | CommandBuilder
    pattern: re.Pattern[str]
    ok_returncodes: frozenset[int] = frozenset({0, 1})
    include_stderr: bool = True

    def build(self, target: Target) -> list[str]:
        """Return the argument list for ``target``."""

        if callable(self.command):
            return [str(part) for part in self.command(target)]
        path = str(target.absolute_path)
        args = [part.replace(TARGET_PLACEHOLDER, path) for part in self.command]
        if not any(TARGET_PLACEHOLDER in part for part in self.command):
            args.append(path)
        return args


def command_analyzer(
    *,
    analyzer_id: str,
    name: str,
    category: str,
    spec: CommandSpec,
    applies_to: AppliesTo,
    timeout_ms: int | None = None,
    confidence_hint: ConfidenceHint = ConfidenceHint.PATTERN,
    default_severity: Severity = Severity.WARNING,
    description: str = "",
) -> AnalyzerDefinition:
    """Return an :class:`AnalyzerDefinition` that shells out via :func:`run_command`.

    Args:
        analyzer_id: Unique analyzer identifier.
        name: Human-readable analyzer name.
        category: Category assigned to emitted findings.
        spec: Command invocation and output parsing description.
        applies_to: Applicability predicate.
        timeout_ms: Declared time box. The runner's resolved budget takes precedence
            and the global default applies when neither is set; the subprocess is
            killed once the budget is exceeded.
        confidence_hint: Declared detection reliability.
        default_severity: Severity used when the output omits one.
        description: Optional longer description.

    Returns:
        AnalyzerDefinition: Definition ready for registration.
    """

    def run(target: Target) -> list[str]:
        budget_ms = current_time_budget_ms() or timeout_ms or DEFAULT_ANALYZER_TIMEOUT_MS
        try:
            completed = run_command(
                spec.build(target),
                options=CommandOptions(cwd=target.root, timeout=budget_ms / 1000),
            )
        except FileNotFoundError as exc:
            raise AnalyzerExecutionError(analyzer_id, target.path, str(exc)) from exc
        if completed.returncode == TIMEOUT_RETURNCODE:
            raise AnalyzerTimeoutError(analyzer_id, target.path, budget_ms)
        if completed.returncode not in spec.ok_returncodes:
            detail = (completed.stderr or completed.stdout or "").strip().splitlines()
            message = detail[-1] if detail else f"exit status {completed.returncode}"
            raise AnalyzerExecutionError(analyzer_id, target.path, message)
        output = (completed.stdout or "").splitlines()
        if spec.include_stderr:
            output.extend((completed.stderr or "").splitlines())
        return output

    def parse(raw: RawResult) -> list[FindingDraft]:
        drafts: list[FindingDraft] = []
        for line in raw.lines:
            match = spec.pattern.search(line)
            if match is None:
                continue
            groups = match.groupdict()
            drafts.append(
                FindingDraft(
                    message=groups["message"].strip(),
                    line=groups.get("line"),
                    severity=groups.get("severity"),
                    fix=groups.get("fix"),
                    evidence="",
                )
            )
        return drafts

    return AnalyzerDefinition(
        id=analyzer_id,
        name=name,
        category=category,
        applies_to=applies_to,
        run=run,
        parse=parse,
        timeout_ms=timeout_ms,
        confidence_hint=confidence_hint,
        default_severity=default_severity,
        description=description,
    )


PHP_LINT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:PHP )?(?P<severity>Parse error|Fatal error):\s+(?P<message>.+?) in .+? on line (?P<line>\d+)"
)


def php_syntax_analyzer(*, timeout_ms: int = 10_000) -> AnalyzerDefinition:
    """Return an analyzer running ``php -l`` on PHP targets."""

    def applies(target: Target) -> bool:
        return target.exists and target.language in {"php", "blade"}

    return command_analyzer(
        analyzer_id="php-syntax",
        name="PHP syntax check",
        category="correctness",
        spec=CommandSpec(
            command=("php", "-l", TARGET_PLACEHOLDER),
            pattern=PHP_LINT_PATTERN,
            ok_returncodes=frozenset({0, 255}),
        ),
        applies_to=applies,
        timeout_ms=timeout_ms,
        confidence_hint=ConfidenceHint.EXACT,
        default_severity=Severity.CRITICAL,
        description="Reports PHP parse errors using the PHP CLI linter.",
    )


__all__ = ["TARGET_PLACEHOLDER", "CommandSpec", "command_analyzer", "php_syntax_analyzer"]
