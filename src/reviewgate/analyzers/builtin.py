# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in pattern analyzers for secrets, debug leftovers, and risky framework usage."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final

from ..core.models import ChangeKind, RawResult, Target
from ..core.severity import Severity
from .base import AnalyzerDefinition, ConfidenceHint, FindingDraft
from .registry import AnalyzerRegistry

SOURCE_LANGUAGES: Final[frozenset[str]] = frozenset(
    {"php", "blade", "python", "javascript", "typescript", "json", "yaml", "toml", "shell", "env"}
)
POSITIVE_KIND: Final[str] = "positive"


@dataclass(frozen=True, slots=True)
class LinePattern:
    """Single regular expression checked against every line of a target."""

    label: str
    regex: re.Pattern[str]
    confidence: int | None = None


@dataclass(frozen=True, slots=True)
class PatternCheck:
    """Declarative line-oriented check turned into an analyzer by :func:`pattern_analyzer`."""

    id: str
    name: str
    category: str
    severity: Severity
    message: str
    patterns: tuple[LinePattern, ...]
    hint: ConfidenceHint = ConfidenceHint.PATTERN
    fix: str | None = None
    languages: frozenset[str] = SOURCE_LANGUAGES
    path_globs: tuple[str, ...] = field(default_factory=tuple)
    description: str = ""

    def applies(self, target: Target) -> bool:
        """Return ``True`` when the check should inspect ``target``."""

        if not target.exists or target.language not in self.languages:
            return False
        if self.path_globs:
            return any(fnmatch.fnmatch(target.path, glob) for glob in self.path_globs)
        return True


def _scan_lines(check: PatternCheck, target: Target) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for number, text in enumerate(target.read_text().splitlines(), start=1):
        for pattern in check.patterns:
            if pattern.regex.search(text):
                records.append(
                    {
                        "line": number,
                        "label": pattern.label,
                        "evidence": text.strip(),
                        "confidence": pattern.confidence,
                    }
                )
                break
    return records


def _records_to_drafts(message: str, fix: str | None) -> Callable[[RawResult], list[FindingDraft]]:
    def parse(raw: RawResult) -> list[FindingDraft]:
        return [
            FindingDraft(
                message=message.format(label=record.get("label", "")),
                line=record.get("line"),
                evidence=record.get("evidence", ""),
                confidence=record.get("confidence"),
                fix=fix,
            )
            for record in raw.records
            if record.get("kind") != POSITIVE_KIND
        ]

    return parse


def pattern_analyzer(check: PatternCheck) -> AnalyzerDefinition:
    """Return an :class:`AnalyzerDefinition` evaluating ``check`` line by line."""

    return AnalyzerDefinition(
        id=check.id,
        name=check.name,
        category=check.category,
        applies_to=check.applies,
        run=lambda target: _scan_lines(check, target),
        parse=_records_to_drafts(check.message, check.fix),
        confidence_hint=check.hint,
        default_severity=check.severity,
        description=check.description,
    )


def _ci(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


SECRET_PATTERNS: Final[tuple[LinePattern, ...]] = (
    LinePattern("AWS access key id", re.compile(r"AKIA[0-9A-Z]{16}"), 95),
    LinePattern(
        "AWS secret access key",
        _ci(r"aws[_-]?secret[_-]?access[_-]?key['\"]?\s*[=:]\s*['\"][^'\"]{8,}"),
        90,
    ),
    LinePattern("Stripe live key", re.compile(r"\b[spr]k_live_[a-zA-Z0-9]{24,}"), 95),
    LinePattern("GitHub token", re.compile(r"\bgh[opsu]_[a-zA-Z0-9]{36}"), 95),
    LinePattern("GitLab token", re.compile(r"\bglpat-[a-zA-Z0-9-]{20,}"), 95),
    LinePattern("Slack token", re.compile(r"\bxox[baprs]-[a-zA-Z0-9-]{10,}"), 95),
    LinePattern("SendGrid key", re.compile(r"\bSG\.[a-zA-Z0-9_-]{22}\.[a-zA-Z0-9_-]{43}"), 95),
    LinePattern("Twilio key", re.compile(r"\bSK[a-f0-9]{32}\b"), 90),
    LinePattern("Mailgun key", re.compile(r"\bkey-[a-f0-9]{32}\b"), 90),
    LinePattern("private key", re.compile(r"-----BEGIN (?:RSA |DSA |EC |OPENSSH |PGP )?PRIVATE KEY"), 95),
    LinePattern("JSON web token", re.compile(r"\beyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*"), 85),
    LinePattern("API key", _ci(r"api[_-]?key['\"]?\s*[=:]\s*['\"][a-zA-Z0-9]{20,}"), 85),
    LinePattern("secret key", _ci(r"secret[_-]?key['\"]?\s*[=:]\s*['\"][a-zA-Z0-9]{20,}"), 85),
    LinePattern("password", _ci(r"password['\"]?\s*[=:]\s*['\"][^'\"]{8,}"), 85),
    LinePattern(
        "database URL with credentials",
        _ci(r"(?:mysql|postgres(?:ql)?|mongodb|redis)://[^:\s]+:[^@\s]+@"),
        90,
    ),
)

_MIGRATION_GLOBS: Final[tuple[str, ...]] = ("database/migrations/*.php", "*/database/migrations/*.php")
_ENV_TEMPLATE_GLOBS: Final[tuple[str, ...]] = ("*.env.example", "*.env.dist")
_ENV_TEMPLATE_SECRETS: Final[tuple[tuple[str, str], ...]] = (
    ("APP_KEY", "APP_KEY"),
    ("DB_PASSWORD", "DB_PASSWORD"),
    ("MAIL_PASSWORD", "MAIL_PASSWORD"),
    ("AWS_SECRET", "AWS_SECRET(?:_ACCESS_KEY)?"),
    ("STRIPE_SECRET", "STRIPE_SECRET(?:_KEY)?"),
)
# Empty, null, variable references and obvious placeholders are acceptable template values.
_TEMPLATE_PLACEHOLDER: Final[str] = r"(?!\s*$|null\s*$|your-|xxx|\$)"

BUILTIN_CHECKS: Final[tuple[PatternCheck, ...]] = (
    PatternCheck(
        id="hardcoded-secret",
        name="Hardcoded secret",
        category="security",
        severity=Severity.CRITICAL,
        message="Potential hardcoded {label}",
        patterns=SECRET_PATTERNS,
        hint=ConfidenceHint.EXACT,
        fix="Move the value to environment configuration and rotate the exposed credential.",
        description="Detects credentials and tokens committed in source files.",
    ),
    PatternCheck(
        id="dangerous-eval",
        name="Dynamic code evaluation",
        category="security",
        severity=Severity.CRITICAL,
        message="eval() call allows code injection",
        patterns=(LinePattern("eval", re.compile(r"(?<![\w>$.])eval\s*\(")),),
        languages=frozenset({"php", "python", "javascript", "typescript"}),
        fix="Replace eval() with explicit parsing or dispatch.",
    ),
    PatternCheck(
        id="debug-call",
        name="Debug leftover",
        category="quality",
        severity=Severity.WARNING,
        message="Debug call {label} left in code",
        patterns=(
            LinePattern("dd()/dump()", re.compile(r"(?<![\w>$:])(?:dd|dump|var_dump|print_r)\s*\(")),
            LinePattern("breakpoint()", re.compile(r"\b(?:breakpoint\(\)|pdb\.set_trace\(\))")),
            LinePattern("debugger statement", re.compile(r"^\s*debugger\s*;?\s*$")),
        ),
        languages=frozenset({"php", "blade", "python", "javascript", "typescript"}),
        fix="Remove the debug statement before committing.",
    ),
    PatternCheck(
        id="hardcoded-ip",
        name="Hardcoded IP address",
        category="security",
        severity=Severity.SUGGESTION,
        message="Hardcoded IP address",
        patterns=(LinePattern("ipv4", re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")),),
        hint=ConfidenceHint.HEURISTIC,
        languages=frozenset({"php", "python", "javascript", "typescript", "yaml", "json"}),
        fix="Read host addresses from configuration.",
    ),
    PatternCheck(
        id="destructive-migration",
        name="Destructive migration",
        category="data",
        severity=Severity.WARNING,
        message="Destructive schema operation ({label}) in migration",
        patterns=(
            LinePattern("dropColumn", re.compile(r"->dropColumn\s*\(")),
            LinePattern("drop table", re.compile(r"(?:Schema::drop(?:IfExists)?|->drop)\s*\(")),
            LinePattern("drop constraint", re.compile(r"->drop(?:Foreign|Index|Unique|Primary)\s*\(")),
            LinePattern("rename", re.compile(r"(?:->renameColumn|Schema::rename|->rename)\s*\(")),
            LinePattern("truncate", re.compile(r"->truncate\s*\(")),
        ),
        hint=ConfidenceHint.HEURISTIC,
        languages=frozenset({"php"}),
        path_globs=_MIGRATION_GLOBS,
        fix="Confirm a backup exists and the operation is reversible.",
    ),
    PatternCheck(
        id="migration-raw-sql",
        name="Raw SQL in migration",
        category="security",
        severity=Severity.WARNING,
        message="Raw SQL ({label}) in migration",
        patterns=(LinePattern("DB::statement/unprepared/raw", re.compile(r"DB::(?:statement|unprepared|raw)\s*\(")),),
        languages=frozenset({"php"}),
        path_globs=_MIGRATION_GLOBS,
        fix="Prefer the schema builder, or bind every value passed to the statement.",
    ),
    PatternCheck(
        id="migration-non-nullable",
        name="Non-nullable column change",
        category="data",
        severity=Severity.WARNING,
        message="Column made non-nullable; the migration fails if existing rows hold NULL",
        patterns=(LinePattern("nullable(false)", re.compile(r"->nullable\(\s*false\s*\)")),),
        languages=frozenset({"php"}),
        path_globs=_MIGRATION_GLOBS,
        fix="Backfill existing rows or supply a default() before tightening the column.",
    ),
    PatternCheck(
        id="blade-unescaped-output",
        name="Unescaped Blade output",
        category="security",
        severity=Severity.WARNING,
        message="Unescaped output {{!! !!}} may allow XSS",
        patterns=(LinePattern("unescaped", re.compile(r"\{!!")),),
        hint=ConfidenceHint.HEURISTIC,
        languages=frozenset({"blade"}),
        fix="Use {{ }} unless the value is trusted HTML.",
    ),
    PatternCheck(
        id="blade-inline-php",
        name="Inline PHP in Blade template",
        category="quality",
        severity=Severity.WARNING,
        message="Inline PHP tag in Blade template",
        patterns=(LinePattern("php tag", re.compile(r"<\?(?:php\b|=)")),),
        languages=frozenset({"blade"}),
        fix="Use Blade directives such as @php or {{ }} instead of raw PHP tags.",
    ),
    PatternCheck(
        id="env-template-secret",
        name="Real secret in environment template",
        category="security",
        severity=Severity.CRITICAL,
        message="Environment template sets a real value for {label}",
        patterns=tuple(
            LinePattern(label, re.compile(rf"^{key}={_TEMPLATE_PLACEHOLDER}")) for label, key in _ENV_TEMPLATE_SECRETS
        ),
        hint=ConfidenceHint.EXACT,
        languages=frozenset({"env"}),
        path_globs=_ENV_TEMPLATE_GLOBS,
        fix="Replace the value with an empty or placeholder value and rotate the credential.",
    ),
)

_FORM_PATTERN: Final[re.Pattern[str]] = _ci(r"<form[^>]*method\s*=\s*[\"'](?:post|put|patch|delete)[\"']")
_CSRF_PATTERN: Final[re.Pattern[str]] = re.compile(r"@csrf|csrf_field\(\)|csrf_token\(\)")
_SPOOFED_METHOD: Final[re.Pattern[str]] = _ci(r"\bmethod\s*=\s*[\"'](?:put|patch|delete)[\"']")
_METHOD_DIRECTIVE: Final[re.Pattern[str]] = re.compile(r"@method\s*\(|method_field\s*\(")
_FORM_WINDOW: Final[int] = 5
_SINGLE_ARGUMENT: Final[str] = r"\s*\(\s*(['\"])[^'\"]*\1\s*\)"
_BLOCK_DIRECTIVES: Final[tuple[tuple[str, re.Pattern[str], re.Pattern[str]], ...]] = (
    *(
        (name, re.compile(rf"@{name}\b"), re.compile(rf"@end{name}\b"))
        for name in (
            "if",
            "foreach",
            "forelse",
            "for",
            "while",
            "switch",
            "auth",
            "guest",
            "can",
            "cannot",
            "push",
            "prepend",
            "component",
        )
    ),
    # Two-argument @section/@slot calls are inline and need no closing directive.
    (
        "section",
        re.compile(rf"@section{_SINGLE_ARGUMENT}"),
        re.compile(r"@(?:endsection|show|stop|overwrite|append)\b"),
    ),
    ("slot", re.compile(rf"@slot{_SINGLE_ARGUMENT}"), re.compile(r"@endslot\b")),
)
_ENV_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(r"^([A-Z_][A-Z0-9_]*)=")
_ENV_SPACED_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(r"^[A-Z_][A-Z0-9_]*\s+=")
_ENV_DEBUG_ENABLED: Final[re.Pattern[str]] = _ci(r"^APP_DEBUG=true\b")


def _scan_blade_forms(target: Target) -> list[dict[str, Any]]:
    lines = target.read_text().splitlines()
    forms = [(number, text.strip()) for number, text in enumerate(lines, start=1) if _FORM_PATTERN.search(text)]
    if not forms:
        return []
    if any(_CSRF_PATTERN.search(text) for text in lines):
        return [{"kind": POSITIVE_KIND, "message": f"CSRF protection present in forms of {target.path}"}]
    return [{"line": number, "evidence": text} for number, text in forms]


def _observe_positive(raw: RawResult) -> list[str]:
    return [str(record["message"]) for record in raw.records if record.get("kind") == POSITIVE_KIND]


def _scan_method_spoofing(target: Target) -> list[dict[str, Any]]:
    lines = target.read_text().splitlines()
    return [
        {"line": index + 1, "evidence": text.strip()}
        for index, text in enumerate(lines)
        if _SPOOFED_METHOD.search(text)
        and not any(_METHOD_DIRECTIVE.search(following) for following in lines[index : index + _FORM_WINDOW + 1])
    ]


def _scan_unclosed_directives(target: Target) -> list[dict[str, Any]]:
    lines = target.read_text().splitlines()
    records: list[dict[str, Any]] = []
    for name, opener, closer in _BLOCK_DIRECTIVES:
        pending: list[int] = []
        for number, text in enumerate(lines, start=1):
            events = sorted(
                [(match.start(), True) for match in opener.finditer(text)]
                + [(match.start(), False) for match in closer.finditer(text)]
            )
            for _, opening in events:
                if opening:
                    pending.append(number)
                elif pending:
                    pending.pop()
        records.extend(
            {"line": number, "label": f"@{name}", "evidence": lines[number - 1].strip()} for number in pending
        )
    return sorted(records, key=lambda record: (record["line"], record["label"]))


def _scan_env_template(target: Target) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    first_seen: dict[str, int] = {}
    for number, text in enumerate(target.read_text().splitlines(), start=1):
        evidence = text.strip()
        if _ENV_SPACED_ASSIGNMENT.match(text):
            records.append({"line": number, "evidence": evidence, "label": "spaces around '=' are not valid syntax"})
            continue
        match = _ENV_ASSIGNMENT.match(text)
        if match is None:
            continue
        key = match.group(1)
        if key in first_seen:
            label = f"duplicate key {key} (first set on line {first_seen[key]})"
            records.append({"line": number, "evidence": evidence, "label": label})
        else:
            first_seen[key] = number
        if _ENV_DEBUG_ENABLED.match(text):
            records.append({"line": number, "evidence": evidence, "label": "APP_DEBUG should default to false"})
    return records


def _scan_missing_down(target: Target) -> list[dict[str, Any]]:
    if re.search(r"function\s+down\s*\(", target.read_text()):
        return []
    return [{"line": None, "evidence": ""}]


def _matches_globs(target: Target, globs: tuple[str, ...]) -> bool:
    return target.exists and any(fnmatch.fnmatch(target.path, glob) for glob in globs)


def _is_migration(target: Target) -> bool:
    return _matches_globs(target, _MIGRATION_GLOBS)


def _is_env_template(target: Target) -> bool:
    return target.language == "env" and _matches_globs(target, _ENV_TEMPLATE_GLOBS)


def _is_blade(target: Target) -> bool:
    return target.exists and target.language == "blade"


def _is_staged_env_file(target: Target) -> bool:
    # Untracked local .env files are expected; only staged ones are reported.
    return target.staged and target.language == "env" and target.change_kind is not ChangeKind.DELETED


STRUCTURAL_ANALYZERS: Final[tuple[AnalyzerDefinition, ...]] = (
    AnalyzerDefinition(
        id="blade-missing-csrf",
        name="Blade form without CSRF token",
        category="security",
        applies_to=_is_blade,
        run=_scan_blade_forms,
        parse=_records_to_drafts("State-changing form without @csrf token", "Add @csrf inside the form."),
        confidence_hint=ConfidenceHint.PATTERN,
        default_severity=Severity.CRITICAL,
        observe=_observe_positive,
    ),
    AnalyzerDefinition(
        id="blade-method-spoofing",
        name="Form without method spoofing",
        category="correctness",
        applies_to=_is_blade,
        run=_scan_method_spoofing,
        parse=_records_to_drafts(
            "PUT/PATCH/DELETE form without @method directive",
            "HTML forms only submit GET and POST; add @method('PUT') (or PATCH/DELETE) inside the form.",
        ),
        confidence_hint=ConfidenceHint.PATTERN,
        default_severity=Severity.WARNING,
    ),
    AnalyzerDefinition(
        id="blade-unclosed-directive",
        name="Unclosed Blade directive",
        category="correctness",
        applies_to=_is_blade,
        run=_scan_unclosed_directives,
        parse=_records_to_drafts("Unclosed {label} directive", "Add the matching closing directive."),
        confidence_hint=ConfidenceHint.PATTERN,
        default_severity=Severity.CRITICAL,
    ),
    AnalyzerDefinition(
        id="migration-missing-down",
        name="Irreversible migration",
        category="data",
        applies_to=_is_migration,
        run=_scan_missing_down,
        parse=_records_to_drafts("Migration has no down() method", "Implement down() to reverse the migration."),
        confidence_hint=ConfidenceHint.EXACT,
        default_severity=Severity.WARNING,
    ),
    AnalyzerDefinition(
        id="env-template-lint",
        name="Environment template lint",
        category="configuration",
        applies_to=_is_env_template,
        run=_scan_env_template,
        parse=_records_to_drafts("Environment template: {label}", None),
        confidence_hint=ConfidenceHint.EXACT,
        default_severity=Severity.WARNING,
    ),
    AnalyzerDefinition(
        id="committed-env-file",
        name="Committed environment file",
        category="security",
        applies_to=_is_staged_env_file,
        run=lambda target: [{"line": None, "evidence": ""}],
        parse=_records_to_drafts(
            "Environment file should not be committed",
            "Remove the file from version control and add it to .gitignore.",
        ),
        confidence_hint=ConfidenceHint.EXACT,
        default_severity=Severity.CRITICAL,
    ),
)


def builtin_analyzers() -> tuple[AnalyzerDefinition, ...]:
    """Return every built-in analyzer definition."""

    return tuple(pattern_analyzer(check) for check in BUILTIN_CHECKS) + STRUCTURAL_ANALYZERS


def default_registry() -> AnalyzerRegistry:
    """Return a registry populated with the built-in analyzers."""

    return AnalyzerRegistry(builtin_analyzers())


__all__ = [
    "BUILTIN_CHECKS",
    "SECRET_PATTERNS",
    "STRUCTURAL_ANALYZERS",
    "LinePattern",
    "PatternCheck",
    "builtin_analyzers",
    "default_registry",
    "pattern_analyzer",
]
