"""
Configuration for the Property Ledger service.

Values come from environment variables prefixed with ``LEDGER_`` or from a
local ``.env`` file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent.parent.parent / "data"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_url: str = Field(
        default=f"sqlite:///{DATA_DIR / 'property_ledger.db'}",
        description="SQLAlchemy database URL"
    )
    sql_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )

    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=False,
        description="Render log events as JSON instead of console lines"
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # Depreciation engine
    projection_years: int = Field(
        default=10,
        ge=1,
        le=40,
        description="Default number of financial years after the start year in a projection"
    )
    schedule_cache_size: int = Field(
        default=4096,
        ge=0,
        description="Entries kept by the multi-year schedule memo"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
