"""Environment configuration for the invoice app."""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DB = "invoice.db"
DEFAULT_PORT = 10000
DEFAULT_MIN_ROWS = 8


@dataclass(frozen=True)
class BusinessProfile:
    name: str = "Your Business Name"
    address: str = "Your Business Address"
    phone: str = "Your Phone Number"
    city: str = "Your City"


@dataclass(frozen=True)
class Settings:
    business: BusinessProfile = field(default_factory=BusinessProfile)
    database_path: str = DEFAULT_DB
    min_table_rows: int = DEFAULT_MIN_ROWS
    wrap_item_names: bool = False
    currency_symbol: str = "Rs."
    log_level: str = "INFO"
    port: int = DEFAULT_PORT


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s value %r, using %s", name, raw, default)
        return default


def _bool_env(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    load_dotenv()
    defaults = BusinessProfile()
    business = BusinessProfile(
        name=os.getenv("BILL_NAME", defaults.name),
        address=os.getenv("BILL_ADDRESS", defaults.address),
        phone=os.getenv("BILL_PHONE", defaults.phone),
        city=os.getenv("BILL_CITY", defaults.city),
    )
    return Settings(
        business=business,
        database_path=os.getenv("INVOICE_DB", DEFAULT_DB).strip(),
        min_table_rows=max(0, _int_env("MIN_TABLE_ROWS", DEFAULT_MIN_ROWS)),
        wrap_item_names=_bool_env("WRAP_ITEM_NAMES"),
        currency_symbol=os.getenv("CURRENCY_SYMBOL", "Rs."),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=_int_env("PORT", DEFAULT_PORT),
    )
