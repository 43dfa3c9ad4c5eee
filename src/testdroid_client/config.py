"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = {"env_prefix": "TESTDROID_", "frozen": True}

    # Cloud
    url: str = "https://cloud.bitbar.com/"
    username: str = ""
    password: str = ""

    # HTTP
    timeout: int = 30

    # Proxy polling
    proxy_attempts: int = 30
    proxy_interval: float = 5.0

    # OAuth: refresh when the token expires within this many seconds
    token_refresh_margin: int = 60


def get_settings() -> Settings:
    """Factory — allows overriding in tests."""
    return Settings()
