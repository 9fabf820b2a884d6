"""Configuration management for Radici.

Loads settings from environment variables and provides validated configuration.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RADICI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Working copy used by the CLI
    db_path: Path = Path("./radici.db")

    # Image uploads
    max_image_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    allowed_image_types: tuple[str, ...] = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
    )

    # Snapshot export
    export_version: str = "2.0"

    # Logging
    log_level: str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_json: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value


# Global settings instance
settings = Settings()
