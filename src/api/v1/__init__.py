# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Authentication endpoints (login, register, refresh, password, email).
    users: User management endpoints.
    branches: Branch management endpoints.
    classes: Class schedule endpoints.
    tenants: Tenant endpoints (current tenant, stats, settings).
"""

from fastapi import APIRouter

from src.api.v1 import auth, branches, classes, tenants, users

# Mounted under the API prefix by the application factory
router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(branches.router, prefix="/branches", tags=["Branches"])
router.include_router(classes.router, prefix="/classes", tags=["Classes"])
router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])
