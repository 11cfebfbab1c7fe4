# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read-only access to reviewed files during validation."""

from __future__ import annotations

from pathlib import Path


class ValidationContext:
    """Cached, read-only view of files beneath the run root.

    Files are read at most once per context. Paths that resolve outside the
    root are treated as missing.
    """

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()
        self._cache: dict[str, tuple[str, ...] | None] = {}

    @property
    def root(self) -> Path:
        """Return the resolved run root."""
        return self._root

    def lines(self, file: str) -> tuple[str, ...] | None:
        """Return the lines of ``file`` or ``None`` when it cannot be read."""

        if file not in self._cache:
            self._cache[file] = self._read(file)
        return self._cache[file]

    def exists(self, file: str) -> bool:
        """Return ``True`` when ``file`` is a readable file under the root."""

        return self.lines(file) is not None

    def line_text(self, file: str, line: int | None) -> str | None:
        """Return the text of ``line`` (1-based) in ``file`` when available."""

        if line is None:
            return None
        content = self.lines(file)
        if content is None or not 1 <= line <= len(content):
            return None
        return content[line - 1]

    def contains(self, file: str, snippet: str, line: int | None = None) -> bool:
        """Return ``True`` when ``snippet`` occurs on ``line`` (or anywhere when ``line`` is ``None``)."""

        needle = snippet.strip()
        if line is not None:
            text = self.line_text(file, line)
            return text is not None and needle in text
        content = self.lines(file)
        return content is not None and any(needle in text for text in content)

    def _read(self, file: str) -> tuple[str, ...] | None:
        candidate = Path(file)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        try:
            resolved = candidate.resolve()
            resolved.relative_to(self._root)
        except (OSError, ValueError):
            return None
        if not resolved.is_file():
            return None
        try:
            return tuple(resolved.read_text(encoding="utf-8", errors="replace").splitlines())
        except OSError:
            return None


__all__ = ["ValidationContext"]
