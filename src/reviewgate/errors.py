# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared across the review pipeline."""

from __future__ import annotations


class ReviewGateError(Exception):
    """Base class for all reviewgate errors."""


class ConfigError(ReviewGateError):
    """Raised when configuration input is invalid."""


class TargetResolutionError(ReviewGateError):
    """Raised when the set of review targets cannot be determined.

    Resolution errors are the only fatal errors of a run; they abort before any
    analyzer executes.
    """


class AnalyzerExecutionError(ReviewGateError):
    """Raised when an analyzer invocation crashes."""

    def __init__(self, analyzer_id: str, target: str, message: str) -> None:
        """Initialise the error with analyzer and target context.

        Args:
            analyzer_id: Identifier of the failing analyzer.
            target: Target path the analyzer was inspecting.
            message: Description of the underlying failure.
        """

        super().__init__(f"{analyzer_id} failed on {target}: {message}")
        self.analyzer_id = analyzer_id
        self.target = target
        self.detail = message


class AnalyzerTimeoutError(ReviewGateError):
    """Raised when an analyzer exceeds its time box."""

    def __init__(self, analyzer_id: str, target: str, timeout_ms: int) -> None:
        """Initialise the error with the exceeded limit.

        Args:
            analyzer_id: Identifier of the slow analyzer.
            target: Target path the analyzer was inspecting.
            timeout_ms: Time box, in milliseconds, that was exceeded.
        """

        super().__init__(f"{analyzer_id} exceeded {timeout_ms}ms on {target}")
        self.analyzer_id = analyzer_id
        self.target = target
        self.timeout_ms = timeout_ms


class ValidationRuleError(ReviewGateError):
    """Raised when a validation rule is malformed or fails while matching."""

    def __init__(self, rule_id: str, message: str) -> None:
        super().__init__(f"validation rule '{rule_id}': {message}")
        self.rule_id = rule_id


class ReportRenderError(ReviewGateError):
    """Raised when a report cannot be rendered in the requested format."""

    def __init__(self, output_format: str, message: str) -> None:
        super().__init__(f"unable to render report as {output_format}: {message}")
        self.output_format = output_format


__all__ = [
    "AnalyzerExecutionError",
    "AnalyzerTimeoutError",
    "ConfigError",
    "ReportRenderError",
    "ReviewGateError",
    "TargetResolutionError",
    "ValidationRuleError",
]
