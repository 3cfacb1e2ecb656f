# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

This package contains domain services that encapsulate business logic.
Each domain module provides services that orchestrate operations
across repositories.

Domains:
    auth: Token codec, password hashing and the credential lifecycle.
    authorization: Role hierarchy and access gates.
    user: Administrative user management.
"""
