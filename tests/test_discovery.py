# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for target resolution and language detection."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

import pytest

from reviewgate.core.models import ChangeKind
from reviewgate.discovery.languages import detect_language
from reviewgate.discovery.targets import STAGED_DIFF_COMMAND, TargetRequest, TargetResolver
from reviewgate.errors import TargetResolutionError


@pytest.mark.parametrize(
    ("path", "language"),
    [
        ("resources/views/home.blade.php", "blade"),
        ("app/Models/User.php", "php"),
        (".env", "env"),
        ("config/.env.example", "env"),
        ("types/index.d.ts", "typescript"),
        ("README", "unknown"),
    ],
)
def test_detect_language(path: str, language: str) -> None:
    assert detect_language(path) == language


def test_explicit_paths_are_sorted_and_deduplicated(project: Path, write_file) -> None:
    write_file("b.php", "<?php\n")
    write_file("src/a.py", "x = 1\n")
    write_file("src/node_modules/lib.js", "x\n")

    resolver = TargetResolver(project)
    targets = resolver.resolve(TargetRequest.for_paths([Path("src"), Path("b.php"), project / "b.php"]))

    assert [target.path for target in targets] == ["b.php", "src/a.py"]
    assert targets[0].language == "php"
    assert all(target.root == project.resolve() for target in targets)


def test_excludes_are_applied(project: Path, write_file) -> None:
    write_file("app/a.php", "<?php\n")
    write_file("app/generated/b.php", "<?php\n")

    targets = TargetResolver(project).resolve(TargetRequest.for_paths([Path("app")], excludes=["app/generated/*"]))

    assert [target.path for target in targets] == ["app/a.php"]


def test_missing_path_is_fatal(project: Path) -> None:
    with pytest.raises(TargetResolutionError, match="does not exist"):
        TargetResolver(project).resolve(TargetRequest.for_paths([Path("nope.php")]))


def test_path_outside_root_is_fatal(project: Path, tmp_path: Path) -> None:
    outside = tmp_path / "outside.php"
    outside.write_text("<?php\n", encoding="utf-8")

    with pytest.raises(TargetResolutionError, match="outside"):
        TargetResolver(project).resolve(TargetRequest.for_paths([outside]))


def test_empty_path_list_is_fatal(project: Path) -> None:
    with pytest.raises(TargetResolutionError):
        TargetResolver(project).resolve(TargetRequest.for_paths([]))


def test_missing_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(TargetResolutionError):
        TargetResolver(tmp_path / "missing")


def test_staged_changes_use_git_name_status(project: Path) -> None:
    calls: list[tuple[str, ...]] = []

    def fake_git(cmd: Sequence[str], root: Path) -> list[str]:
        calls.append(tuple(cmd))
        return [
            "M\tapp/Http/Controller.php",
            "A\t.env",
            "D\told.php",
            "R100\tapp/Old.php\tapp/New.php",
            "",
        ]

    targets = TargetResolver(project, runner=fake_git).resolve(TargetRequest.staged())

    assert calls == [STAGED_DIFF_COMMAND]
    kinds = {target.path: target.change_kind for target in targets}
    assert kinds == {
        ".env": ChangeKind.ADDED,
        "app/Http/Controller.php": ChangeKind.MODIFIED,
        "app/New.php": ChangeKind.MODIFIED,
        "old.php": ChangeKind.DELETED,
    }
    assert all(target.staged for target in targets)


def test_tree_mode_walks_root(project: Path, write_file) -> None:
    write_file("a.php", "<?php\n")
    write_file(".git/config", "[core]\n")
    write_file("vendor/pkg/x.php", "<?php\n")

    targets = TargetResolver(project).resolve(TargetRequest())

    assert [target.path for target in targets] == ["a.php"]
    assert not targets[0].staged


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_staged_paths_are_relative_to_a_nested_root(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    root = repo / "web"
    (root / "app").mkdir(parents=True)
    (root / "app" / "User.php").write_text("<?php\n", encoding="utf-8")
    (repo / "tools.php").write_text("<?php\n", encoding="utf-8")
    subprocess.run(["git", "init", "-q"], cwd=repo, check=True)
    subprocess.run(["git", "add", "."], cwd=repo, check=True)

    targets = TargetResolver(root).resolve(TargetRequest.staged())

    assert [(target.path, target.change_kind) for target in targets] == [("app/User.php", ChangeKind.ADDED)]
    assert targets[0].exists
