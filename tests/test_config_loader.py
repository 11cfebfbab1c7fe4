# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for layered configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from reviewgate.config import Config, ConfigError
from reviewgate.config_loader import ConfigLoader, load_config
from reviewgate.core.severity import Severity


def test_load_config_defaults(project: Path) -> None:
    cfg = load_config(project)

    assert cfg.validation.min_confidence == 80
    assert cfg.gate.fail_on is Severity.CRITICAL
    assert cfg.gate.mode == "blocking"
    assert cfg.output.format == "text"
    assert cfg.execution.parallel >= 1


def test_project_file_overrides_pyproject(project: Path) -> None:
    (project / "pyproject.toml").write_text(
        """
[tool.reviewgate.validation]
min_confidence = 60

[tool.reviewgate.gate]
fail_on = "warning"
""".strip(),
        encoding="utf-8",
    )
    (project / ".reviewgate.toml").write_text(
        """
[validation]
min_confidence = 70
rules_files = ["rules/custom.toml"]
""".strip(),
        encoding="utf-8",
    )

    cfg = load_config(project)

    assert cfg.validation.min_confidence == 70
    assert cfg.gate.fail_on is Severity.WARNING
    assert cfg.validation.rules_files == [project.resolve() / "rules" / "custom.toml"]


def test_explicit_file_and_overrides_take_precedence(project: Path, tmp_path: Path) -> None:
    explicit = tmp_path / "ci.toml"
    explicit.write_text('[execution]\nparallel = 3\n[gate]\nmode = "warn-only"\n', encoding="utf-8")

    cfg = ConfigLoader.for_root(project, explicit=explicit).load(
        {"execution": {"parallel": 5, "run_timeout_s": None}, "gate": {"max_warnings": 2}}
    )

    assert cfg.execution.parallel == 5
    assert cfg.execution.run_timeout_s is None
    assert cfg.gate.mode == "warn-only"
    assert cfg.gate.max_warnings == 2


def test_missing_explicit_file_raises(project: Path, tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        ConfigLoader.for_root(project, explicit=tmp_path / "absent.toml").load()


def test_invalid_values_raise_config_error(project: Path) -> None:
    (project / ".reviewgate.toml").write_text("[validation]\nmin_confidence = 140\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(project)


def test_invalid_toml_raises_config_error(project: Path) -> None:
    (project / ".reviewgate.toml").write_text("[validation\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(project)


def test_timeout_for_prefers_overrides() -> None:
    cfg = Config.model_validate({"execution": {"default_timeout_ms": 900, "analyzer_timeouts": {"slow": 5000}}})

    assert cfg.timeout_for("slow", 100) == 5000
    assert cfg.timeout_for("fast", 100) == 100
    assert cfg.timeout_for("fast", None) == 900
