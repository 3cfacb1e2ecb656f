# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authorization: the role hierarchy and the access gates built on it."""

from src.domains.authorization.gates import (
    AuthorizationError,
    Caller,
    ForbiddenError,
    authorize,
    check_branch,
    check_role,
    check_role_assignment,
    check_self_access,
    check_tenant,
)
from src.domains.authorization.roles import ROLE_RANKS, Role, has_minimum_role

__all__ = [
    "AuthorizationError",
    "Caller",
    "ForbiddenError",
    "ROLE_RANKS",
    "Role",
    "authorize",
    "check_branch",
    "check_role",
    "check_role_assignment",
    "check_self_access",
    "check_tenant",
    "has_minimum_role",
]
