# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Core primitives shared across reviewgate (models, severity, runtime helpers)."""
