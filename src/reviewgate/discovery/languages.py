# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Language detection used to label review targets."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

UNKNOWN_LANGUAGE: Final[str] = "unknown"

# Compound suffixes are checked before plain suffixes.
COMPOUND_SUFFIXES: Final[dict[str, str]] = {
    ".blade.php": "blade",
    ".d.ts": "typescript",
}

LANGUAGE_SUFFIXES: Final[dict[str, str]] = {
    ".php": "php",
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".sh": "shell",
    ".bash": "shell",
    ".md": "markdown",
}


def detect_language(path: str) -> str:
    """Return the language label for ``path`` based on its name.

    Args:
        path: POSIX style path of the target.

    Returns:
        str: Language identifier, ``"unknown"`` when nothing matches.
    """

    name = PurePosixPath(path).name.lower()
    if name == ".env" or name.startswith(".env."):
        return "env"
    for suffix, language in COMPOUND_SUFFIXES.items():
        if name.endswith(suffix):
            return language
    return LANGUAGE_SUFFIXES.get(PurePosixPath(name).suffix, UNKNOWN_LANGUAGE)


__all__ = ["UNKNOWN_LANGUAGE", "detect_language"]
