# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Finding validation: existence checks, false-positive rules and confidence gating."""

from __future__ import annotations

from .context import ValidationContext
from .pipeline import RejectedFinding, ValidationOutcome, ValidationPipeline
from .rules import (
    PredicateRule,
    Rule,
    RuleCatalog,
    RuleEffect,
    ValidationRule,
    default_catalog,
    load_catalog,
    parse_rules,
)

__all__ = [
    "PredicateRule",
    "RejectedFinding",
    "Rule",
    "RuleCatalog",
    "RuleEffect",
    "ValidationContext",
    "ValidationOutcome",
    "ValidationPipeline",
    "ValidationRule",
    "default_catalog",
    "load_catalog",
    "parse_rules",
]
