# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process entry point.

Run with ``python -m src.main`` or ``uvicorn src.main:app``.
"""

import uvicorn

from src.api.app import create_app
from src.core.config import get_settings
from src.utils.logging import setup_logging

settings = get_settings()
setup_logging(settings)

app = create_app(settings)


def run() -> None:
    """Serve the API with uvicorn using the API settings."""
    uvicorn.run(
        "src.main:app",
        host=settings.api.host,
        port=settings.api.port,
        workers=settings.api.workers if not settings.api.reload else 1,
        reload=settings.api.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
