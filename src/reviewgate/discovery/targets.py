# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve the set of files under review for a run."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Final

from ..core.models import ChangeKind, Target
from ..core.runtime.process import CommandOptions, run_command
from ..errors import TargetResolutionError
from .languages import detect_language

GitRunner = Callable[[Sequence[str], Path], list[str]]

DEFAULT_EXCLUDED_DIRS: Final[frozenset[str]] = frozenset(
    {".git", "vendor", "node_modules", "__pycache__", ".venv", ".mypy_cache", ".pytest_cache"}
)
# ``--relative`` limits output to the run root and reports paths relative to it.
STAGED_DIFF_COMMAND: Final[tuple[str, ...]] = (
    "git",
    "diff",
    "--cached",
    "--name-status",
    "--relative",
    "--diff-filter=ACMRD",
)
_STATUS_KINDS: Final[dict[str, ChangeKind]] = {
    "A": ChangeKind.ADDED,
    "C": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "R": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
}


class DiscoveryMode(str, Enum):
    """How the resolver selects targets."""

    PATHS = "paths"
    STAGED = "staged"
    TREE = "tree"


@dataclass(frozen=True, slots=True)
class TargetRequest:
    """Caller supplied description of the files to review."""

    mode: DiscoveryMode = DiscoveryMode.TREE
    paths: tuple[Path, ...] = ()
    excludes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def for_paths(cls, paths: Iterable[Path], *, excludes: Iterable[str] = ()) -> TargetRequest:
        """Return a request reviewing ``paths`` explicitly."""
        return cls(mode=DiscoveryMode.PATHS, paths=tuple(paths), excludes=tuple(excludes))

    @classmethod
    def staged(cls, *, excludes: Iterable[str] = ()) -> TargetRequest:
        """Return a request reviewing staged changes."""
        return cls(mode=DiscoveryMode.STAGED, excludes=tuple(excludes))


def _default_git_runner(cmd: Sequence[str], root: Path) -> list[str]:
    """Execute ``cmd`` in ``root`` returning stdout lines.

    Raises:
        TargetResolutionError: If git is unavailable or the command fails.
    """

    try:
        completed = run_command(cmd, options=CommandOptions(cwd=root))
    except FileNotFoundError as exc:
        raise TargetResolutionError(f"git is not available: {exc}") from exc
    if completed.returncode != 0:
        detail = (completed.stderr or "").strip() or f"exit status {completed.returncode}"
        raise TargetResolutionError(f"'{' '.join(cmd)}' failed: {detail}")
    return (completed.stdout or "").splitlines()


class TargetResolver:
    """Determine the files under review (explicit paths, staged changes, full tree)."""

    def __init__(self, root: Path, *, runner: GitRunner | None = None) -> None:
        """Create a resolver anchored at ``root``.

        Args:
            root: Project root; every target must live beneath it.
            runner: Optional git command runner, replaced in tests.

        Raises:
            TargetResolutionError: If ``root`` is not an existing directory.
        """

        if not root.is_dir():
            raise TargetResolutionError(f"Root directory does not exist: {root}")
        self._root = root.resolve()
        self._runner = runner or _default_git_runner

    @property
    def root(self) -> Path:
        """Return the resolved project root."""
        return self._root

    def resolve(self, request: TargetRequest) -> list[Target]:
        """Return targets for ``request`` sorted by path.

        Args:
            request: Description of the files to review.

        Returns:
            list[Target]: De-duplicated targets ordered by relative path.

        Raises:
            TargetResolutionError: When a path is invalid or git fails.
        """

        if request.mode is DiscoveryMode.PATHS:
            if not request.paths:
                raise TargetResolutionError("No paths supplied for review")
            entries = self._explicit(request.paths)
        elif request.mode is DiscoveryMode.STAGED:
            entries = self._staged()
        else:
            entries = ((path, ChangeKind.MODIFIED) for path in self._walk(self._root))

        targets: dict[str, Target] = {}
        for relative, kind in entries:
            if self._is_excluded(relative, request.excludes):
                continue
            targets.setdefault(
                relative,
                Target(
                    path=relative,
                    root=self._root,
                    change_kind=kind,
                    language=detect_language(relative),
                    staged=request.mode is DiscoveryMode.STAGED,
                ),
            )
        return [targets[key] for key in sorted(targets)]

    def _explicit(self, paths: Sequence[Path]) -> Iterator[tuple[str, ChangeKind]]:
        for raw in paths:
            candidate = raw if raw.is_absolute() else self._root / raw
            if not candidate.exists():
                raise TargetResolutionError(f"Path does not exist: {raw}")
            resolved = candidate.resolve()
            if candidate.is_dir():
                self._relative(resolved)
                for path in self._walk(resolved):
                    yield path, ChangeKind.MODIFIED
            else:
                yield self._relative(resolved), ChangeKind.MODIFIED

    def _staged(self) -> Iterator[tuple[str, ChangeKind]]:
        for line in self._runner(list(STAGED_DIFF_COMMAND), self._root):
            parts = line.strip().split("\t")
            if len(parts) < 2 or not parts[0]:
                continue
            status = parts[0][0].upper()
            kind = _STATUS_KINDS.get(status)
            if kind is None:
                continue
            # Renames and copies report ``old<TAB>new``; the new path is reviewed.
            yield parts[-1], kind

    def _walk(self, directory: Path) -> Iterator[str]:
        for current, dirnames, filenames in os.walk(directory):
            dirnames[:] = sorted(name for name in dirnames if name not in DEFAULT_EXCLUDED_DIRS)
            for filename in sorted(filenames):
                yield self._relative(Path(current) / filename)

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self._root).as_posix()
        except ValueError as exc:
            raise TargetResolutionError(f"Path is outside the project root {self._root}: {path}") from exc

    @staticmethod
    def _is_excluded(relative: str, patterns: Sequence[str]) -> bool:
        parts = relative.split("/")
        if any(part in DEFAULT_EXCLUDED_DIRS for part in parts[:-1]):
            return True
        return any(fnmatch.fnmatch(relative, pattern) for pattern in patterns)


__all__ = [
    "DEFAULT_EXCLUDED_DIRS",
    "DiscoveryMode",
    "GitRunner",
    "TargetRequest",
    "TargetResolver",
]
