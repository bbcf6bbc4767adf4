"""Environment-driven configuration objects for the storefront API."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from truthhair.core.constants import CART_TTL_SECONDS, DEFAULT_STORE_ADDRESS
from truthhair.core.exceptions import ConfigurationException


def _str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"true", "1", "yes", "y"}


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationException(f"{name} must be an integer, got {raw!r}") from e


@dataclass(slots=True)
class CheckoutConfig:
    verify_prices: bool
    store_address: str


@dataclass(slots=True)
class Settings:
    database_url: str | None
    redis_url: str | None
    environment: str
    port: int
    cart_ttl_seconds: int
    checkout: CheckoutConfig
    allowed_origins: list[str] = field(default_factory=list)
    sentry_dsn: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.environment in ("development", "dev", "local", "test")


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    cart_ttl = _int_from_env("CART_TTL_SECONDS", CART_TTL_SECONDS)
    if cart_ttl <= 0:
        raise ConfigurationException("CART_TTL_SECONDS must be positive")

    origins = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    checkout = CheckoutConfig(
        verify_prices=_str_to_bool(os.getenv("CHECKOUT_VERIFY_PRICES"), default=True),
        store_address=os.getenv("STORE_ADDRESS", "").strip() or DEFAULT_STORE_ADDRESS,
    )

    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        redis_url=os.getenv("REDIS_URL") or None,
        environment=os.getenv("ENVIRONMENT", "production").strip().lower(),
        port=_int_from_env("PORT", 8000),
        cart_ttl_seconds=cart_ttl,
        checkout=checkout,
        allowed_origins=origins,
        sentry_dsn=os.getenv("SENTRY_DSN") or None,
    )
