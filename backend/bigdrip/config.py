# backend/bigdrip/config.py
from __future__ import annotations

import os
from decimal import Decimal


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bigdrip.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///bigdrip.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Deployment-level tax rate as a fraction (0.075 == 7.5%); never per-sale input
    TAX_RATE = Decimal(os.environ.get("TAX_RATE", "0.075"))

    # Sale numbers look like BD-000123
    SALE_NUMBER_PREFIX = os.environ.get("SALE_NUMBER_PREFIX", "BD")
    SALE_NUMBER_PAD = int(os.environ.get("SALE_NUMBER_PAD", "6"))

    # When off, a flat discount larger than the subtotal is kept as entered
    # and the sale is rejected with NEGATIVE_TOTAL instead.
    CLAMP_FLAT_DISCOUNT = _env_bool("CLAMP_FLAT_DISCOUNT", True)

    COMMIT_RETRY_ATTEMPTS = int(os.environ.get("COMMIT_RETRY_ATTEMPTS", "3"))
    RECENT_SALES_LIMIT = int(os.environ.get("RECENT_SALES_LIMIT", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # POS front-end dev servers
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if o.strip()
    )
