"""Business settings for the ordering core, read from the environment."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

_settings = None


@dataclass(frozen=True)
class Settings:
    cart_ttl_hours: int = 24
    delivery_fee_cents: int = 299
    tax_rate: Decimal = Decimal("0.08")
    currency: str = "USD"
    min_address_length: int = 10
    max_schedule_days: int = 30
    catalog_adapter: str = "memory"
    seed_demo_catalog: bool = False


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _rate_env(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number, got {raw!r}") from exc
    if not value.is_finite() or value < 0 or value >= 1:
        raise ValueError(f"{name} must be a rate between 0 and 1, got {raw!r}")
    return value


def load_settings() -> Settings:
    """Build a Settings instance from environment variables."""
    return Settings(
        cart_ttl_hours=_int_env("CART_TTL_HOURS", 24, minimum=1),
        delivery_fee_cents=_int_env("DELIVERY_FEE_CENTS", 299),
        tax_rate=_rate_env("TAX_RATE", Decimal("0.08")),
        currency=os.environ.get("CURRENCY", "USD").upper(),
        min_address_length=_int_env("MIN_ADDRESS_LENGTH", 10, minimum=1),
        max_schedule_days=_int_env("MAX_SCHEDULE_DAYS", 30, minimum=1),
        catalog_adapter=os.environ.get("CATALOG_ADAPTER", "memory"),
        seed_demo_catalog=os.environ.get("SEED_DEMO_CATALOG", "").lower() in ("1", "true", "yes"),
    )


def get_settings() -> Settings:
    """Return the process-wide settings (loaded on first use)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings():
    """Drop cached settings so the next call re-reads the environment (useful for testing)."""
    global _settings
    _settings = None
