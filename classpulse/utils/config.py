"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields in .env file
        case_sensitive=False,  # Allow both UPPERCASE and lowercase
    )

    # Supabase (hosted data store)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""

    # Local SQL store (SQLite fallback when unset)
    DATABASE_URL: Optional[str] = None
    SQLITE_PATH: str = "classpulse_dev.db"
    SQL_DEBUG: bool = False

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Timeouts
    REQUEST_TIMEOUT: float = 30.0

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
