"""Application configuration."""

import os
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    stripe_secret_key: str
    stripe_webhook_secret: str
    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str
    environment: str = _ENVIRONMENT
    bypass_stripe: bool = False
    idempotent_fulfillment: bool = True
    checkout_unit_amount_cents: int = 100
    checkout_currency: str = "usd"
    checkout_product_name: str = "AI Image Transformation"
    max_images: int = 3
    default_origin: str = "http://localhost:3000"
    webhook_tolerance_seconds: int = 300
    shared_session_client_cache_size: int = 256
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def is_local(self) -> bool:
        """Return true when running in local development."""
        return self.environment == "local"


def parse_origin(raw: str | None, default: str) -> str:
    """Return the scheme://host[:port] part of an Origin header."""
    if raw is None:
        return default
    cleaned = raw.strip()
    if not cleaned or cleaned == "null":
        return default
    parts = urlsplit(cleaned)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        return default
    return f"{parts.scheme}://{parts.netloc}"
