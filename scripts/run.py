#!/usr/bin/env python3
"""
Episode Tracker Startup Script
"""

import asyncio
import secrets
import sys
from pathlib import Path

from cryptography.fernet import Fernet

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def generate_env_file():
    """Generate .env with fresh secrets if it doesn't exist"""
    env_path = Path(__file__).parent.parent / ".env"
    if env_path.exists():
        return

    lines = [
        f"SECRET_KEY={secrets.token_urlsafe(48)}",
        f"INTEGRATION_ENCRYPTION_KEY={Fernet.generate_key().decode()}",
        "TRAKT_CLIENT_ID=",
        "TMDB_API_KEY=",
        "ENABLE_SCHEDULER=false",
        "SYNC_ON_STARTUP=false",
    ]
    env_path.write_text("\n".join(lines) + "\n")
    print("Generated .env file with random secret and encryption keys")


async def run_server():
    """Run main API server"""
    import uvicorn
    from tracker.config import settings

    print(f"Episode Tracker API starting on http://{settings.HOST}:{settings.PORT}")

    config = uvicorn.Config(
        "tracker.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level="info",
        access_log=True,
    )
    server = uvicorn.Server(config)
    await server.serve()


async def main():
    generate_env_file()

    from tracker.database import init_db

    print("Initializing database...")
    await init_db()
    print("Database initialized successfully.")

    await run_server()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
