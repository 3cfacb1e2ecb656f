# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration module.

Provides centralized configuration management using Pydantic Settings.
"""

from src.core.config.settings import (
    APISettings,
    AuthSettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    RateLimitSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "APISettings",
    "AuthSettings",
    "CORSSettings",
    "DatabaseSettings",
    "JWTSettings",
    "RateLimitSettings",
    "RedisSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
]
