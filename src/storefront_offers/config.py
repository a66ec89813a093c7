"""Configuration surface for the storefront offers client."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_FILE = Path.home() / ".storefront" / "session.json"


class StorefrontSettings(BaseSettings):
    """Client settings, read from ``STOREFRONT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        extra="ignore",
    )

    # API
    api_base_url: str = "http://localhost:5000"
    timeout_seconds: float = Field(default=30.0, gt=0)

    # Offer catalog: delay after attempt n is base * 2**n
    catalog_max_attempts: int = Field(default=3, ge=1)
    catalog_backoff_base_seconds: float = Field(default=1.0, ge=0)

    # Grace wait before re-reading the cart after a claim
    reconcile_grace_seconds: float = Field(default=0.1, ge=0)

    # Session persistence
    token_file: Path = DEFAULT_TOKEN_FILE

    # Where an unauthenticated claim sends the user
    login_path: str = "/login"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> StorefrontSettings:
    """Load settings once per process."""
    return StorefrontSettings()
