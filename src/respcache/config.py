"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Only the CLI and connection helpers read settings; the store itself is
configured through its constructor.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        CACHE_DB_PATH: Path of the SQLite database file
        CACHE_TABLE_NAME: Table holding cached responses
        SQLITE_TIMEOUT: Seconds to wait on a locked database
        LOG_LEVEL: Logging level
        LOG_FILE: JSON Lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DB_PATH: Path = Field(
        default=Path(".cache/http-cache.db"),
        description="SQLite database file for cached responses",
    )
    CACHE_TABLE_NAME: str = Field(
        default="CacheRecord",
        description="Table holding cached responses",
    )
    SQLITE_TIMEOUT: float = Field(
        default=5.0, gt=0.0, description="Seconds to wait on a locked database"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON Lines log file")

    @field_validator("CACHE_TABLE_NAME")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate that the table name is a plain SQL identifier."""
        if not IDENTIFIER_RE.match(v):
            raise ValueError(
                "CACHE_TABLE_NAME must be a plain SQL identifier "
                "(letters, digits and underscores, not starting with a digit)"
            )
        return v

    def ensure_directories(self) -> None:
        """Create the database's parent directory if it doesn't exist."""
        self.CACHE_DB_PATH.parent.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | float | None]:
        """Return settings for display."""
        return {
            "CACHE_DB_PATH": str(self.CACHE_DB_PATH),
            "CACHE_TABLE_NAME": self.CACHE_TABLE_NAME,
            "SQLITE_TIMEOUT": self.SQLITE_TIMEOUT,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
