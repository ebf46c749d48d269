"""
Centralized configuration for the merchandising co-pilot.

Every integration is optional at startup: a missing credential disables the
stage that needs it instead of failing the process.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_POLISH_URL = "https://rlddmqpvfktwayypuvkt.supabase.co/functions/v1/optimize-email"


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid int for %s=%s; falling back to %s", name, value, default)
        return default


def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid float for %s=%s; falling back to %s", name, value, default)
        return default


@dataclass(frozen=True)
class CommerceSettings:
    """commercetools project credentials."""

    project_key: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    auth_url: str
    api_url: str
    scopes: Optional[str]

    @property
    def configured(self) -> bool:
        return bool(self.project_key and self.client_id and self.client_secret)


@dataclass(frozen=True)
class KlaviyoSettings:
    api_key: Optional[str]
    list_id: Optional[str]
    from_email: str
    from_label: str
    revision: str

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class AppSettings:
    """Resolved process configuration."""

    commerce: CommerceSettings
    klaviyo: KlaviyoSettings
    stripe_secret_key: Optional[str]
    email_polish_url: str
    public_base_url: str
    checkout_url: str
    storefront_url: str
    currency_code: str
    static_dir: str
    image_download_timeout_s: float
    cors_origins: Tuple[str, ...]

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)


def _parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    origins = tuple(origin.strip() for origin in (raw or "").split(",") if origin.strip())
    return origins or ("http://localhost:3000",)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    """Load and cache application configuration from environment variables."""

    commerce = CommerceSettings(
        project_key=env_str("CTP_PROJECT_KEY"),
        client_id=env_str("CTP_CLIENT_ID"),
        client_secret=env_str("CTP_CLIENT_SECRET"),
        auth_url=env_str("CTP_AUTH_URL", "https://auth.europe-west1.gcp.commercetools.com"),
        api_url=env_str("CTP_API_URL", "https://api.europe-west1.gcp.commercetools.com"),
        scopes=env_str("CTP_SCOPES"),
    )
    if not commerce.configured:
        logger.warning("commercetools credentials not configured; catalog features disabled")

    klaviyo = KlaviyoSettings(
        api_key=env_str("KLAVIYO_API_KEY"),
        list_id=env_str("KLAVIYO_LIST_ID"),
        from_email=env_str("KLAVIYO_FROM_EMAIL", "bundles@example.com"),
        from_label=env_str("KLAVIYO_FROM_LABEL", "AI Merchandising Co-Pilot"),
        revision=env_str("KLAVIYO_REVISION", "2024-10-15"),
    )

    stripe_key = env_str("STRIPE_SECRET_KEY")
    if not stripe_key:
        logger.info("STRIPE_SECRET_KEY not configured; checkout sessions will be skipped")

    return AppSettings(
        commerce=commerce,
        klaviyo=klaviyo,
        stripe_secret_key=stripe_key,
        email_polish_url=env_str("EMAIL_POLISH_URL", DEFAULT_EMAIL_POLISH_URL),
        public_base_url=env_str("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/"),
        checkout_url=env_str("CHECKOUT_URL", "https://your-storefront.com/checkout"),
        storefront_url=env_str("STOREFRONT_URL", "https://your-store.com").rstrip("/"),
        currency_code=env_str("CURRENCY_CODE", "USD").upper(),
        static_dir=env_str("STATIC_DIR", "public"),
        image_download_timeout_s=env_float("IMAGE_DOWNLOAD_TIMEOUT_S", 30.0),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5000")),
    )
