"""Configuration management"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Secret Key
    SECRET_KEY: str = "change-this-to-a-random-secret-key"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/tracker.db"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    ALGORITHM: str = "HS256"

    # Directories
    BASE_DIR: Path = Path(__file__).parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOGS_DIR: Path = DATA_DIR / "logs"

    HOST: str = "0.0.0.0"
    PORT: int = 8765
    ALLOWED_ORIGINS: Optional[str] = None  # Comma-separated origins for main API

    # Metadata provider and poster resolver
    TRAKT_CLIENT_ID: Optional[str] = None
    TMDB_API_KEY: Optional[str] = None  # v3 key or v4 read access token

    # Plex
    PLEX_CLIENT_ID: str = "episodetracker"
    PLEX_PRODUCT: str = "Episode Tracker"
    INTEGRATION_ENCRYPTION_KEY: Optional[str] = None  # Fernet key

    # Scheduled sync (one global schedule for all users)
    ENABLE_SCHEDULER: bool = False
    SYNC_ON_STARTUP: bool = False
    STARTUP_SYNC_DELAY_SECONDS: int = 30
    SYNC_HOUR: int = 3
    SYNC_MINUTE: int = 0
    SYNC_USER_DELAY_SECONDS: float = 2.0
    SYNC_HISTORY_LIMIT: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.DATA_DIR.mkdir(exist_ok=True)
        self.LOGS_DIR.mkdir(exist_ok=True)


# Global settings instance
settings = Settings()
