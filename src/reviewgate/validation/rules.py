# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Declarative false-positive catalog applied by the validation pipeline."""

from __future__ import annotations

import fnmatch
import re
import tomllib
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Final, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.models import Finding
from ..errors import ConfigError, ValidationRuleError
from .context import ValidationContext

RULES_TABLE: Final[str] = "rules"


class RuleEffect(str, Enum):
    """Outcome applied to a finding matched by a rule."""

    REJECT = "reject"
    ADJUST = "adjust"


@runtime_checkable
class Rule(Protocol):
    """Behaviour shared by declarative and programmatic rules."""

    @property
    def id(self) -> str:
        """Return the unique rule identifier."""

    @property
    def effect(self) -> RuleEffect:
        """Return the effect applied on match."""

    @property
    def delta(self) -> int:
        """Return the confidence adjustment applied on match."""

    def matches(self, finding: Finding, context: ValidationContext) -> bool:
        """Return ``True`` when the rule applies to ``finding``."""


class ValidationRule(BaseModel):
    """Declarative rule matching findings by analyzer, category, path and text.

    Every populated criterion must match; empty criteria match everything.
    ``line_pattern`` is tested against the source line at the finding's
    location, or against the evidence snippet when the line is unknown.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    description: str = ""
    effect: RuleEffect = RuleEffect.ADJUST
    delta: int = Field(default=0, ge=-100, le=100)
    analyzers: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    message_pattern: re.Pattern[str] | None = None
    evidence_pattern: re.Pattern[str] | None = None
    line_pattern: re.Pattern[str] | None = None

    def matches(self, finding: Finding, context: ValidationContext) -> bool:
        """Return ``True`` when every configured criterion matches ``finding``."""

        if self.analyzers and finding.analyzer_id not in self.analyzers:
            return False
        if self.categories and finding.category not in self.categories:
            return False
        if self.paths and not path_matches(finding.file, self.paths):
            return False
        if self.message_pattern is not None and not self.message_pattern.search(finding.message):
            return False
        if self.evidence_pattern is not None and not self.evidence_pattern.search(finding.evidence_snippet):
            return False
        if self.line_pattern is not None:
            text = context.line_text(finding.file, finding.line)
            if text is None:
                text = finding.evidence_snippet
            if not self.line_pattern.search(text):
                return False
        return True


@dataclass(frozen=True, slots=True)
class PredicateRule:
    """Programmatic rule wrapping an arbitrary predicate."""

    id: str
    predicate: Callable[[Finding, ValidationContext], bool]
    effect: RuleEffect = RuleEffect.ADJUST
    delta: int = 0
    description: str = ""

    def matches(self, finding: Finding, context: ValidationContext) -> bool:
        """Return the predicate's verdict for ``finding``."""
        return bool(self.predicate(finding, context))


def path_matches(file: str, globs: Sequence[str]) -> bool:
    """Return ``True`` when ``file`` or its basename matches any glob."""

    name = PurePosixPath(file).name
    return any(fnmatch.fnmatchcase(file, glob) or fnmatch.fnmatchcase(name, glob) for glob in globs)


@dataclass(frozen=True, slots=True)
class RuleCatalog:
    """Ordered collection of rules plus notices recorded while loading it."""

    rules: tuple[Rule, ...] = ()
    notices: tuple[str, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def ids(self) -> tuple[str, ...]:
        """Return rule identifiers in application order."""
        return tuple(rule.id for rule in self.rules)

    def extend(self, other: RuleCatalog | Iterable[Rule]) -> RuleCatalog:
        """Return a catalog with ``other`` appended after the current rules.

        Rules whose identifier is already present are skipped and noted.
        """

        incoming = other.rules if isinstance(other, RuleCatalog) else tuple(other)
        notices = list(self.notices)
        if isinstance(other, RuleCatalog):
            notices.extend(other.notices)
        seen = set(self.ids)
        merged = list(self.rules)
        for rule in incoming:
            if rule.id in seen:
                notices.append(f"validation rule '{rule.id}': duplicate identifier ignored")
                continue
            seen.add(rule.id)
            merged.append(rule)
        return RuleCatalog(rules=tuple(merged), notices=tuple(notices))


def rule_from_mapping(entry: Mapping[str, Any], *, index: int = 0) -> ValidationRule:
    """Build a :class:`ValidationRule` from a TOML/JSON mapping.

    Args:
        entry: Mapping describing a single rule.
        index: Position of the entry, used to label rules without an id.

    Returns:
        ValidationRule: Validated rule.

    Raises:
        ValidationRuleError: If the entry is not a valid rule.
    """

    if not isinstance(entry, Mapping):
        raise ValidationRuleError(f"#{index}", "rule entries must be tables")
    rule_id = str(entry.get("id") or f"#{index}")
    try:
        return ValidationRule.model_validate(dict(entry))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'rule'}: {error['msg']}" for error in exc.errors()
        )
        raise ValidationRuleError(rule_id, problems) from exc


def parse_rules(entries: Iterable[Mapping[str, Any]]) -> RuleCatalog:
    """Return a catalog built from ``entries``, recording malformed rules as notices."""

    rules: list[Rule] = []
    notices: list[str] = []
    for index, entry in enumerate(entries):
        try:
            rules.append(rule_from_mapping(entry, index=index))
        except ValidationRuleError as exc:
            notices.append(str(exc))
    return RuleCatalog().extend(RuleCatalog(rules=tuple(rules), notices=tuple(notices)))


def load_catalog(path: Path) -> RuleCatalog:
    """Load rules from the ``[[rules]]`` array of a TOML document.

    Args:
        path: TOML file containing rule tables.

    Returns:
        RuleCatalog: Rules in declaration order; malformed entries are skipped
        and described in :attr:`RuleCatalog.notices`.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
    """

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Unable to load validation rules from {path}: {exc}") from exc
    entries = document.get(RULES_TABLE, [])
    if not isinstance(entries, list):
        raise ConfigError(f"'{RULES_TABLE}' in {path} must be an array of tables")
    return parse_rules(entries)


_TEST_PATHS: Final[tuple[str, ...]] = (
    "tests/*",
    "test/*",
    "*/tests/*",
    "*/test/*",
    "fixtures/*",
    "*/fixtures/*",
    "*Test.php",
    "test_*.py",
    "*_test.*",
    "*.test.*",
    "*.spec.*",
)
_DOC_PATHS: Final[tuple[str, ...]] = (
    "*.md",
    "*.rst",
    "*.txt",
    "docs/*",
    "*/docs/*",
    "examples/*",
    "*/examples/*",
)
_PRIVATE_ADDRESS: Final[str] = (
    r"\b(?:localhost|127\.0\.0\.1|0\.0\.0\.0|10(?:\.\d{1,3}){3}|192\.168(?:\.\d{1,3}){2}"
    r"|172\.(?:1[6-9]|2\d|3[01])(?:\.\d{1,3}){2})\b"
)
# A lookup keyed by name whose fallback, if any, is not a string literal.
_ENVIRONMENT_LOOKUP: Final[str] = (
    r"\b(?:env|getenv|config)\s*\(\s*(['\"])[\w.-]+\1\s*(?:,\s*(?:null|true|false|-?\d+|''|\"\")\s*)?\)"
)
_PLACEHOLDER_SECRET: Final[str] = (
    r"(?i)(?:change[_-]?me|your[_-]?(?:api[_-]?)?(?:key|secret|token|password)|placeholder"
    r"|example|dummy|x{3,}|\*{3,}|<[a-z_-]+>)"
)


def default_catalog() -> RuleCatalog:
    """Return the built-in catalog of known-safe patterns.

    Adjustments are tunable defaults; projects override or extend them through
    rule files loaded with :func:`load_catalog`.
    """

    return RuleCatalog(
        rules=(
            ValidationRule(
                id="env-example-file",
                description="Template environment files are meant to be committed.",
                effect=RuleEffect.REJECT,
                analyzers=("committed-env-file",),
                paths=(".env.example", "*.env.example", ".env.dist", "*.env.dist"),
            ),
            ValidationRule(
                id="environment-lookup",
                description="Values read from env(), getenv() or config() with no literal fallback.",
                effect=RuleEffect.REJECT,
                categories=("security",),
                line_pattern=re.compile(_ENVIRONMENT_LOOKUP),
            ),
            ValidationRule(
                id="private-address",
                description="Loopback and private network addresses are not sensitive.",
                effect=RuleEffect.REJECT,
                evidence_pattern=re.compile(_PRIVATE_ADDRESS),
                analyzers=("hardcoded-ip",),
            ),
            ValidationRule(
                id="placeholder-secret",
                description="Placeholder credentials such as 'changeme' or 'your-api-key'.",
                effect=RuleEffect.REJECT,
                categories=("security",),
                evidence_pattern=re.compile(_PLACEHOLDER_SECRET),
            ),
            ValidationRule(
                id="test-fixture-file",
                description="Tests and fixtures routinely contain fake credentials and debug calls.",
                delta=-25,
                paths=_TEST_PATHS,
            ),
            ValidationRule(
                id="documentation-file",
                description="Documentation and example files describe code rather than run it.",
                delta=-20,
                paths=_DOC_PATHS,
            ),
            ValidationRule(
                id="known-provider-prefix",
                description="Key formats issued by well-known providers are rarely false positives.",
                delta=10,
                categories=("security",),
                evidence_pattern=re.compile(r"(?:[spr]k_live_|AKIA[0-9A-Z]{16}|gh[pousr]_[A-Za-z0-9]{20,})"),
            ),
        )
    )


__all__ = [
    "PredicateRule",
    "Rule",
    "RuleCatalog",
    "RuleEffect",
    "ValidationRule",
    "default_catalog",
    "load_catalog",
    "parse_rules",
    "path_matches",
    "rule_from_mapping",
]
