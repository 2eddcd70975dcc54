# backend/stockpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Manual stock-out policy. Sales always refuse to oversell; this flag only
    # decides whether a manual "out" movement may take stock below zero (backorder).
    ALLOW_NEGATIVE_MANUAL_STOCK = _env_flag("ALLOW_NEGATIVE_MANUAL_STOCK", False)

    # Callable returning a new sale id. None -> identifier_service.uuid_sale_id
    SALE_ID_FACTORY = None

    STORE_NAME = os.environ.get("STORE_NAME", "Main Store")
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "S/")

    ACTIVITY_FEED_DEFAULT_LIMIT = 20
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
