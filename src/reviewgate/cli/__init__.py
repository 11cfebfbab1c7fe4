# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line interface for reviewgate."""

from __future__ import annotations

__all__: list[str] = []
