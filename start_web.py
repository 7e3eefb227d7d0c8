#!/usr/bin/env python3
"""Start the depbump web application."""

import uvicorn

from core.config import Settings
from core.log import setup_logging

if __name__ == "__main__":
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)

    uvicorn.run(
        "apps.web.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
