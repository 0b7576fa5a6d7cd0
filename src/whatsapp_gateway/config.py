"""Application configuration."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_NON_DIGITS = re.compile(r"\D")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_secret_key: str
    supabase_url: str
    supabase_service_key: str
    bridge_url: str = "http://localhost:3000"
    bridge_webhook_token: str
    credentials_dir: str = "./sessions"
    connect_poll_interval_seconds: float = 0.5
    connect_poll_timeout_seconds: float = 20.0
    pairing_request_delay_seconds: float = 3.0
    provider_connect_timeout_seconds: float = 60.0
    max_qr_attempts: int = 5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def normalize_phone_number(raw: str | None) -> str | None:
    """Strip formatting from a phone number, keeping only digits."""
    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", raw)
    return digits or None
