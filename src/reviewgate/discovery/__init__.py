# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Target discovery (explicit paths, staged changes, full tree)."""

from __future__ import annotations

from .languages import detect_language
from .targets import DiscoveryMode, GitRunner, TargetRequest, TargetResolver

__all__ = ["DiscoveryMode", "GitRunner", "TargetRequest", "TargetResolver", "detect_language"]
