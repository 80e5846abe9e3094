#!/usr/bin/env python3
"""Server startup script for the external health monitor."""

import uvicorn
from dotenv import load_dotenv

from external_health.config.settings import get_settings


def main():
    """Start the FastAPI server."""
    load_dotenv()
    settings = get_settings()

    print(f"🚀 Starting {settings.app_name} {settings.app_version}...")
    print(f"🔍 Host: {settings.host}")
    print(f"🔍 Port: {settings.port}")
    print(f"🔍 Environment: {settings.environment.value}")

    uvicorn.run(
        "external_health.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.observability.log_level.value.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
