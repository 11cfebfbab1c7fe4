# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Config loading utilities with layered precedence."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final, Protocol

from pydantic import ValidationError

from .config import Config
from .errors import ConfigError

PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "reviewgate"
PROJECT_CONFIG_NAME: Final[str] = ".reviewgate.toml"
_PATH_LIST_FIELDS: Final[tuple[tuple[str, str], ...]] = (("validation", "rules_files"),)
_PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (("output", "history_path"), ("output", "output_path"))


class ConfigSource(Protocol):
    """Protocol implemented by configuration fragments."""

    name: str

    def load(self) -> Mapping[str, Any]:
        """Return the configuration fragment supplied by this source."""
        raise NotImplementedError


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` recursively updated with ``override``."""

    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _resolve_relative_paths(document: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Anchor relative path settings in ``document`` to ``base_dir``."""

    for section, field in _PATH_LIST_FIELDS:
        table = document.get(section)
        if isinstance(table, dict) and isinstance(table.get(field), list):
            table[field] = [str(_anchor(Path(str(entry)), base_dir)) for entry in table[field]]
    for section, field in _PATH_FIELDS:
        table = document.get(section)
        if isinstance(table, dict) and isinstance(table.get(field), str):
            table[field] = str(_anchor(Path(table[field]), base_dir))
    return document


def _anchor(path: Path, base_dir: Path) -> Path:
    return path if path.is_absolute() else base_dir / path


class TomlConfigSource:
    """Load configuration data from a TOML document."""

    def __init__(self, path: Path, *, name: str | None = None, required: bool = False) -> None:
        self._path = path
        self.name = name or str(path)
        self._required = required

    def load(self) -> Mapping[str, Any]:
        if not self._path.exists():
            if self._required:
                raise ConfigError(f"Configuration file not found: {self._path}")
            return {}
        try:
            with self._path.open("rb") as handle:
                data = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Unable to read configuration at {self._path}: {exc}") from exc
        return _resolve_relative_paths(self._select(data), self._path.parent)

    def _select(self, data: dict[str, Any]) -> dict[str, Any]:
        return data


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.reviewgate]`` within ``pyproject.toml``."""

    def _select(self, data: dict[str, Any]) -> dict[str, Any]:
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, dict):
            return {}
        section = tool_section.get(PYPROJECT_SECTION_KEY)
        if not isinstance(section, dict):
            return {}
        return section


class ConfigLoader:
    """Apply layered configuration sources with predictable precedence."""

    def __init__(self, sources: Sequence[ConfigSource]) -> None:
        self._sources = list(sources)

    @classmethod
    def for_root(cls, project_root: Path, *, explicit: Path | None = None) -> ConfigLoader:
        """Build a loader honouring pyproject, project file, then ``explicit``.

        Args:
            project_root: Workspace root used to discover configuration files.
            explicit: Optional configuration file supplied on the command line.

        Returns:
            ConfigLoader: Loader configured with default precedence ordering.
        """

        root = project_root.resolve()
        sources: list[ConfigSource] = [
            PyProjectConfigSource(root / "pyproject.toml"),
            TomlConfigSource(root / PROJECT_CONFIG_NAME),
        ]
        if explicit is not None:
            sources.append(TomlConfigSource(explicit, required=True))
        return cls(sources)

    def load(self, overrides: Mapping[str, Mapping[str, Any]] | None = None) -> Config:
        """Return the merged configuration with ``overrides`` applied last.

        Args:
            overrides: Section/field mapping typically derived from CLI flags.
                ``None`` values are ignored.

        Returns:
            Config: Fully merged configuration model.

        Raises:
            ConfigError: If any layer supplies an invalid value.
        """

        document: dict[str, Any] = {}
        for source in self._sources:
            fragment = source.load()
            if fragment:
                document = _deep_merge(document, fragment)
        if overrides:
            cleaned = {
                section: {key: value for key, value in values.items() if value is not None}
                for section, values in overrides.items()
            }
            document = _deep_merge(document, cleaned)
        try:
            return Config.model_validate(document)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(project_root: Path, *, explicit: Path | None = None) -> Config:
    """Load configuration for ``project_root`` using the default tiered sources."""
    return ConfigLoader.for_root(project_root, explicit=explicit).load()


__all__ = [
    "PROJECT_CONFIG_NAME",
    "ConfigLoader",
    "ConfigSource",
    "PyProjectConfigSource",
    "TomlConfigSource",
    "load_config",
]
