# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Render reports as JSON, plain text, or Markdown."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from ..core.models import Report
from ..core.severity import Severity
from ..errors import ReportRenderError

Renderer = Callable[[Report], str]
Payload = Mapping[str, Any]

FALLBACK_FORMAT: Final[str] = "json"
_SEVERITY_HEADINGS: Final[dict[str, str]] = {
    Severity.CRITICAL.value: "Critical issues",
    Severity.WARNING.value: "Warnings",
    Severity.SUGGESTION.value: "Suggestions",
}


def render_json(report: Report) -> str:
    """Return the report payload as indented JSON."""

    return json.dumps(report.to_payload(), indent=2)


def _status_label(summary: Payload) -> str:
    label = "PASSED" if summary["passed"] else "FAILED"
    if summary["incomplete"]:
        label += " (incomplete)"
    return label


def _counts_line(summary: Payload) -> str:
    return (
        f"{summary['critical']} critical, {summary['warning']} warning(s), "
        f"{summary['suggestion']} suggestion(s), {summary['tooling_errors']} tooling error(s)"
    )


def _location(item: Payload) -> str:
    return item["file"] if item["line"] is None else f"{item['file']}:{item['line']}"


def _grouped(findings: Sequence[Payload]) -> list[tuple[str, list[Payload]]]:
    groups: list[tuple[str, list[Payload]]] = []
    for severity, heading in _SEVERITY_HEADINGS.items():
        members = [item for item in findings if item["severity"] == severity]
        if members:
            groups.append((heading, members))
    return groups


def render_text(report: Report) -> str:
    """Return a plain-text report suitable for terminals and logs."""

    payload = report.to_payload()
    summary = payload["summary"]
    lines = [
        f"Review {payload['run_id']}: {_status_label(summary)}",
        f"Targets analysed: {payload['targets_count']}",
        f"Findings: {_counts_line(summary)}",
    ]
    for heading, members in _grouped(payload["findings"]):
        lines.extend(["", f"{heading} ({len(members)})"])
        for item in members:
            marker = "" if item["new"] else " [seen]"
            lines.append(
                f"  {_location(item)}  {item['issue']}  "
                f"[{item['analyzer']}, confidence {item['confidence']}]{marker}"
            )
            if item["fix"]:
                lines.append(f"      fix: {item['fix']}")
    if payload["positive_findings"]:
        lines.extend(["", "Positive findings"])
        lines.extend(f"  + {message}" for message in payload["positive_findings"])
    if payload["notices"]:
        lines.extend(["", "Notices"])
        lines.extend(f"  - {notice}" for notice in payload["notices"])
    return "\n".join(lines) + "\n"


def _md_cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def render_markdown(report: Report) -> str:
    """Return a Markdown report suitable for pull request comments."""

    payload = report.to_payload()
    summary = payload["summary"]
    lines = [
        "# Code review report",
        "",
        f"**Status:** {_status_label(summary)}  ",
        f"**Targets analysed:** {payload['targets_count']}  ",
        f"**Run:** `{payload['run_id']}`",
        "",
        "| Critical | Warnings | Suggestions | Tooling errors | New |",
        "| --- | --- | --- | --- | --- |",
        (
            f"| {summary['critical']} | {summary['warning']} | {summary['suggestion']} "
            f"| {summary['tooling_errors']} | {summary['new']} |"
        ),
    ]
    for heading, members in _grouped(payload["findings"]):
        lines.extend(["", f"## {heading}", "", "| Location | Issue | Fix | Confidence | Analyzer |"])
        lines.append("| --- | --- | --- | --- | --- |")
        for item in members:
            lines.append(
                f"| `{_md_cell(_location(item))}` | {_md_cell(item['issue'])} | {_md_cell(item['fix'] or '')} "
                f"| {item['confidence']} | `{item['analyzer']}` |"
            )
    if payload["positive_findings"]:
        lines.extend(["", "## Positive findings", ""])
        lines.extend(f"- {message}" for message in payload["positive_findings"])
    if payload["notices"]:
        lines.extend(["", "## Notices", ""])
        lines.extend(f"- {notice}" for notice in payload["notices"])
    return "\n".join(lines) + "\n"


RENDERERS: Final[dict[str, Renderer]] = {
    "json": render_json,
    "text": render_text,
    "markdown": render_markdown,
}


def render(report: Report, output_format: str, *, renderers: Mapping[str, Renderer] | None = None) -> str:
    """Render ``report`` using the renderer registered for ``output_format``.

    Raises:
        ReportRenderError: If the format is unknown or the renderer fails.
    """

    table = RENDERERS if renderers is None else renderers
    renderer = table.get(output_format)
    if renderer is None:
        raise ReportRenderError(output_format, f"unknown format; choose from {', '.join(sorted(table))}")
    try:
        return renderer(report)
    except ReportRenderError:
        raise
    except Exception as exc:  # surface as a render error so callers can fall back
        raise ReportRenderError(output_format, f"{type(exc).__name__}: {exc}") from exc


@dataclass(frozen=True, slots=True)
class RenderedReport:
    """Rendered report content and the format actually produced."""

    content: str
    output_format: str
    fallback_reason: str | None = None

    @property
    def fell_back(self) -> bool:
        """Return ``True`` when the requested format could not be produced."""
        return self.fallback_reason is not None


def render_report(
    report: Report,
    output_format: str,
    *,
    renderers: Mapping[str, Renderer] | None = None,
) -> RenderedReport:
    """Render ``report``, falling back to JSON when the requested format fails.

    Args:
        report: Report to render.
        output_format: Requested format name.
        renderers: Optional renderer table overriding :data:`RENDERERS`.

    Returns:
        RenderedReport: Rendered content with the reason for any fallback.
    """

    try:
        return RenderedReport(render(report, output_format, renderers=renderers), output_format)
    except ReportRenderError as exc:
        return RenderedReport(render_json(report), FALLBACK_FORMAT, fallback_reason=str(exc))


__all__ = [
    "FALLBACK_FORMAT",
    "RENDERERS",
    "RenderedReport",
    "Renderer",
    "render",
    "render_json",
    "render_markdown",
    "render_report",
    "render_text",
]
