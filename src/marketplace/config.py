"""Pipeline settings read from the environment.

Protean's own configuration (databases, brokers, event store) lives in
``domain.toml``. The values here tune the checkout pipeline itself.
"""

import os
from dataclasses import dataclass
from functools import lru_cache


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


@dataclass(frozen=True)
class Settings:
    platform_fee_percentage: float = 10.0
    checkout_session_ttl_minutes: int = 30
    guest_cart_ttl_days: int = 3
    low_stock_threshold: int = 5
    currency: str = "usd"
    gateway_timeout_seconds: float = 10.0
    broker_timeout_seconds: float = 2.0
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    vendor_dashboard_url: str = "http://localhost:3001"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings(
        platform_fee_percentage=_float("PLATFORM_FEE_PERCENTAGE", 10.0),
        checkout_session_ttl_minutes=_int("CHECKOUT_SESSION_TTL_MINUTES", 30),
        guest_cart_ttl_days=_int("GUEST_CART_TTL_DAYS", 3),
        low_stock_threshold=_int("LOW_STOCK_THRESHOLD", 5),
        currency=os.environ.get("CURRENCY", "usd"),
        gateway_timeout_seconds=_float("GATEWAY_TIMEOUT_SECONDS", 10.0),
        broker_timeout_seconds=_float("BROKER_TIMEOUT_SECONDS", 2.0),
        stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
        vendor_dashboard_url=os.environ.get("VENDOR_DASHBOARD_URL", "http://localhost:3001"),
    )
