# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the academy service.

This package contains shared infrastructure for the application:
- config: Application configuration and settings
"""
