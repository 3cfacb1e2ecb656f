# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared utilities: structured logging and UTC datetime helpers."""

from src.utils.datetime import (
    ensure_utc,
    is_expired,
    minutes_from_now,
    parse_duration,
    utc_now,
)
from src.utils.logging import bind_context, bound_context, clear_context, get_logger, setup_logging

__all__ = [
    "bind_context",
    "bound_context",
    "clear_context",
    "ensure_utc",
    "get_logger",
    "is_expired",
    "minutes_from_now",
    "parse_duration",
    "setup_logging",
    "utc_now",
]
