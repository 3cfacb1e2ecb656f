"""Academy access-control backend.

Multi-tenant authentication and authorization core for martial arts academy
management: tenant-scoped persistence, credential lifecycle, signed tokens
and role gates behind a FastAPI surface.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
