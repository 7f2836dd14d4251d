#!/usr/bin/env python3
"""
metaboard API Startup Script

Starts the metaboard FastAPI server (dashboard at /, API docs at /docs).
"""

import os
import sys
from pathlib import Path

import uvicorn

from metaboard.deps import load_env_file


def main():
    """Start the metaboard API server."""
    print("Starting metaboard API Server...")
    print("   Dashboard:   http://localhost:8000/")
    print("   Swagger UI:  http://localhost:8000/docs")
    print("")

    env_file = Path(".env")
    if not env_file.exists():
        print("WARNING: No .env file found!")
        print("   Create a .env file with these variables:")
        print("   META_ACCESS_TOKEN=...  META_AD_ACCOUNT_ID=...")
        print("   GOOGLE_SHEETS_ID=...  GOOGLE_SERVICE_ACCOUNT_EMAIL=...  GOOGLE_PRIVATE_KEY=...")
        print("")

    # SENTRY_DSN and friends are read from os.environ, not through Settings
    load_env_file()

    try:
        uvicorn.run(
            "metaboard.main:app",
            host="0.0.0.0",
            port=int(os.getenv("PORT", "8000")),
            reload=os.getenv("ENVIRONMENT", "development") == "development",
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\nShutting down metaboard API server...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
