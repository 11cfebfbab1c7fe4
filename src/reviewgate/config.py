# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and helpers for the reviewgate orchestrator."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field

from .core.severity import Severity
from .errors import ConfigError

DEFAULT_MIN_CONFIDENCE: Final[int] = 80
DEFAULT_ANALYZER_TIMEOUT_MS: Final[int] = 30_000
DEFAULT_GRACE_PERIOD_S: Final[float] = 1.0

RunMode = Literal["blocking", "warn-only"]
OutputFormat = Literal["text", "json", "markdown"]


def default_parallel_jobs() -> int:
    """Return the number of available CPU cores (minimum of 1)."""
    return max(1, os.cpu_count() or 1)


class DiscoveryConfig(BaseModel):
    """Configuration for how review targets are discovered."""

    model_config = ConfigDict(validate_assignment=True)

    excludes: list[str] = Field(default_factory=list)


class ExecutionConfig(BaseModel):
    """Worker pool, time box and analyzer selection settings."""

    model_config = ConfigDict(validate_assignment=True)

    parallel: int = Field(default_factory=default_parallel_jobs, ge=1)
    run_timeout_s: float | None = Field(default=None, gt=0)
    grace_period_s: float = Field(default=DEFAULT_GRACE_PERIOD_S, ge=0)
    default_timeout_ms: int = Field(default=DEFAULT_ANALYZER_TIMEOUT_MS, ge=1)
    analyzer_timeouts: dict[str, int] = Field(default_factory=dict)
    disabled: list[str] = Field(default_factory=list)


class ValidationConfig(BaseModel):
    """Confidence threshold and false-positive catalog sources."""

    model_config = ConfigDict(validate_assignment=True)

    min_confidence: int = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0, le=100)
    rules_files: list[Path] = Field(default_factory=list)
    use_default_rules: bool = True


class GateConfig(BaseModel):
    """Pass/fail policy and exit code behaviour."""

    model_config = ConfigDict(validate_assignment=True)

    fail_on: Severity = Severity.CRITICAL
    max_warnings: int | None = Field(default=None, ge=0)
    mode: RunMode = "blocking"


class OutputConfig(BaseModel):
    """Configuration for controlling report rendering and persisted history."""

    model_config = ConfigDict(validate_assignment=True)

    format: OutputFormat = "text"
    emoji: bool = True
    color: bool = True
    output_path: Path | None = None
    history_path: Path | None = None
    update_history: bool = False


class Config(BaseModel):
    """Top-level configuration for a review run."""

    model_config = ConfigDict(validate_assignment=True)

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def timeout_for(self, analyzer_id: str, declared_ms: int | None) -> int:
        """Return the effective time box for ``analyzer_id`` in milliseconds.

        Explicit per-analyzer overrides win over the analyzer's declared value,
        which in turn wins over the global default.
        """

        override = self.execution.analyzer_timeouts.get(analyzer_id)
        if override is not None:
            return override
        if declared_ms is not None:
            return declared_ms
        return self.execution.default_timeout_ms

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible mapping of the configuration."""
        return self.model_dump(mode="json")


__all__ = [
    "DEFAULT_ANALYZER_TIMEOUT_MS",
    "DEFAULT_GRACE_PERIOD_S",
    "DEFAULT_MIN_CONFIDENCE",
    "Config",
    "ConfigError",
    "DiscoveryConfig",
    "ExecutionConfig",
    "GateConfig",
    "OutputConfig",
    "OutputFormat",
    "RunMode",
    "ValidationConfig",
    "default_parallel_jobs",
]
