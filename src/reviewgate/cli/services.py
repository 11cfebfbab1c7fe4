# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Build the collaborators a CLI run needs (configuration, registry, rules)."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

from ..analyzers.builtin import default_registry
from ..analyzers.plugins import EntryPointLoader, load_entry_point_analyzers
from ..analyzers.registry import AnalyzerRegistry
from ..config import Config
from ..config_loader import ConfigLoader
from ..discovery.targets import TargetRequest
from ..errors import ConfigError
from ..execution.runner import CancellationToken
from ..validation.rules import RuleCatalog, default_catalog, load_catalog
from .options import AnalyzeOptions
from .shared import CLIError, CLILogger


def load_run_config(options: AnalyzeOptions) -> Config:
    """Return the merged configuration for ``options``.

    Raises:
        CLIError: If any configuration layer is invalid.
    """

    try:
        return ConfigLoader.for_root(options.root, explicit=options.config_file).load(options.overrides)
    except ConfigError as exc:
        raise CLIError(f"Invalid configuration: {exc}") from exc


def build_registry(logger: CLILogger, *, plugin_loader: EntryPointLoader | None = None) -> AnalyzerRegistry:
    """Return the built-in analyzers plus those contributed by installed plugins.

    Plugins that cannot be loaded or that clash with an existing analyzer id
    are reported and skipped.
    """

    registry = default_registry()
    plugins = load_entry_point_analyzers(loader=plugin_loader)
    for failure in plugins.failures:
        logger.warn(f"Skipping {failure}")
    for analyzer in plugins.analyzers:
        try:
            registry.register(analyzer)
        except ValueError as exc:
            logger.warn(f"Skipping plugin analyzer: {exc}")
    logger.debug(f"registry analyzers={len(registry)} plugins={len(plugins.analyzers)}")
    return registry


def build_catalog(config: Config, extra_rules: Sequence[Path], logger: CLILogger) -> RuleCatalog:
    """Return the validation catalog for ``config`` and ``extra_rules``.

    Raises:
        CLIError: If a rules file cannot be read.
    """

    catalog = default_catalog() if config.validation.use_default_rules else RuleCatalog()
    for path in (*config.validation.rules_files, *extra_rules):
        try:
            catalog = catalog.extend(load_catalog(path))
        except ConfigError as exc:
            raise CLIError(str(exc)) from exc
        logger.debug(f"rules file={path} rules={len(catalog)}")
    return catalog


def build_request(options: AnalyzeOptions, config: Config) -> TargetRequest:
    """Return the target request described by ``options``."""

    excludes = config.discovery.excludes
    if options.staged:
        return TargetRequest.staged(excludes=excludes)
    if options.paths:
        return TargetRequest.for_paths(options.paths, excludes=excludes)
    return TargetRequest(excludes=tuple(excludes))


@contextmanager
def cancel_on_interrupt(token: CancellationToken, logger: CLILogger) -> Iterator[None]:
    """Route SIGINT to ``token`` for the duration of the block.

    A second interrupt falls through to the previous handler.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.getsignal(signal.SIGINT)

    def handle(signum: int, frame: FrameType | None) -> None:
        if token.cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        token.cancel()
        logger.warn("Interrupted; finishing in-flight analyzers and reporting partial results")

    signal.signal(signal.SIGINT, handle)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


__all__ = [
    "build_catalog",
    "build_registry",
    "build_request",
    "cancel_on_interrupt",
    "load_run_config",
]
