# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``analyze`` command: run the review pipeline and emit a report."""

from __future__ import annotations

from pathlib import Path

import typer

from ...config import Config
from ...core.models import Report
from ...errors import TargetResolutionError
from ...execution.runner import CancellationToken
from ...orchestration.orchestrator import Orchestrator, OrchestratorHooks, summary_line
from ...reporting.history import FindingHistory
from ...reporting.render import render_report
from ..options import (
    CONFIG_OPTION,
    DEBUG_OPTION,
    DISABLE_OPTION,
    FAIL_ON_OPTION,
    FORMAT_OPTION,
    HISTORY_OPTION,
    MAX_WARNINGS_OPTION,
    MIN_CONFIDENCE_OPTION,
    MODE_OPTION,
    NO_COLOR_OPTION,
    NO_DEFAULT_RULES_OPTION,
    NO_EMOJI_OPTION,
    OUTPUT_OPTION,
    PARALLEL_OPTION,
    PATHS_OPTION,
    ROOT_OPTION,
    RULES_OPTION,
    STAGED_OPTION,
    TIMEOUT_OPTION,
    UPDATE_HISTORY_OPTION,
    AnalyzeOptions,
    build_overrides,
    split_paths,
)
from ..services import build_catalog, build_registry, build_request, cancel_on_interrupt, load_run_config
from ..shared import CLIError, CLILogger, build_cli_logger


def analyze_command(
    paths: PATHS_OPTION = None,
    staged: STAGED_OPTION = False,
    root: ROOT_OPTION = Path("."),
    parallel: PARALLEL_OPTION = None,
    min_confidence: MIN_CONFIDENCE_OPTION = None,
    fail_on: FAIL_ON_OPTION = None,
    mode: MODE_OPTION = None,
    output_format: FORMAT_OPTION = None,
    config_file: CONFIG_OPTION = None,
    rules: RULES_OPTION = None,
    no_default_rules: NO_DEFAULT_RULES_OPTION = False,
    history: HISTORY_OPTION = None,
    update_history: UPDATE_HISTORY_OPTION = False,
    max_warnings: MAX_WARNINGS_OPTION = None,
    timeout: TIMEOUT_OPTION = None,
    output: OUTPUT_OPTION = None,
    disable: DISABLE_OPTION = None,
    no_emoji: NO_EMOJI_OPTION = False,
    no_color: NO_COLOR_OPTION = False,
    debug: DEBUG_OPTION = False,
) -> None:
    """Review files with every applicable analyzer and report validated findings.

    Exit status is 0 when the review passes cleanly, 1 when it passes with
    warnings or incomplete results, and 2 when blocking findings survive
    validation or the targets cannot be resolved.
    """

    if paths and staged:
        raise typer.BadParameter("--paths and --staged cannot be combined", param_hint="'--paths' / '--staged'")
    options = AnalyzeOptions(
        root=root.resolve(),
        paths=split_paths(paths),
        staged=staged,
        config_file=config_file,
        rules_files=tuple(rules or ()),
        overrides=build_overrides(
            parallel=parallel,
            min_confidence=min_confidence,
            fail_on=fail_on,
            mode=mode,
            output_format=output_format,
            no_default_rules=no_default_rules,
            history=history,
            update_history=update_history,
            max_warnings=max_warnings,
            timeout=timeout,
            output=output,
            disable=disable,
            no_emoji=no_emoji,
            no_color=no_color,
        ),
        use_emoji=not no_emoji,
        use_color=not no_color,
        debug=debug,
    )
    logger = build_cli_logger(emoji=options.use_emoji, debug=debug, no_color=not options.use_color)
    try:
        exit_code = run_analysis(options, logger)
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    raise typer.Exit(code=exit_code)


def run_analysis(options: AnalyzeOptions, logger: CLILogger) -> int:
    """Execute a review run for ``options`` and return the exit status.

    Raises:
        CLIError: On invalid configuration, unreadable rules, or unresolvable targets.
    """

    config = load_run_config(options)
    logger = build_cli_logger(emoji=config.output.emoji, debug=options.debug, no_color=not config.output.color)
    logger.debug(f"root={options.root} parallel={config.execution.parallel} mode={config.gate.mode}")
    registry = build_registry(logger)
    catalog = build_catalog(config, options.rules_files, logger)
    history = FindingHistory(config.output.history_path) if config.output.history_path else None
    orchestrator = Orchestrator(
        registry,
        catalog,
        config,
        root=options.root,
        history=history,
        hooks=OrchestratorHooks(after_discovery=lambda count: logger.info(f"Reviewing {count} target(s)")),
        debug_logger=logger.debug,
    )
    token = CancellationToken()
    with cancel_on_interrupt(token, logger):
        try:
            outcome = orchestrator.run(build_request(options, config), cancel=token)
        except TargetResolutionError as exc:
            raise CLIError(f"Unable to resolve review targets: {exc}") from exc
    _emit_report(outcome.report, config, logger)
    _emit_summary(outcome.report, config, logger)
    return outcome.exit_code


def _emit_report(report: Report, config: Config, logger: CLILogger) -> None:
    rendered = render_report(report, config.output.format)
    if rendered.fell_back:
        logger.warn(f"{rendered.fallback_reason}; emitting JSON instead")
    destination = config.output.output_path
    if destination is None:
        logger.echo(rendered.content, nl=False)
        return
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(rendered.content, encoding="utf-8")
    logger.ok(f"Report written to {destination}")


def _emit_summary(report: Report, config: Config, logger: CLILogger) -> None:
    line = summary_line(report)
    if not report.passed:
        logger.fail(line)
        if config.gate.mode == "warn-only":
            logger.warn("warn-only mode: not blocking on these findings")
    elif report.summary.tooling_errors or report.incomplete or report.summary.warning:
        logger.warn(line)
    else:
        logger.ok(line)


__all__ = ["analyze_command", "run_analysis"]
