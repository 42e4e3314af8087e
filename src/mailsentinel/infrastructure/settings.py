"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Mail Sentinel IMAP Proxy"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=3000, validation_alias=AliasChoices("api_port", "port"))
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # IMAP
    imap_timeout_seconds: float = Field(default=30.0, gt=0)
    default_folder: str = "INBOX"
    max_page_limit: int = Field(default=500, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
