# backend/justsell/config.py
from __future__ import annotations
import hashlib
import os


def _default_field_key(secret: str) -> str:
    # Dev-only fallback; production deployments set FIELD_ENCRYPTION_KEY explicitly
    return hashlib.sha256(f"justsell-field-key:{secret}".encode("utf-8")).hexdigest()


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/justsell.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///justsell.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Field-level encryption (AES-256-GCM). Keys are 64 hex chars.
    # Older versions stay listed in FIELD_ENCRYPTION_KEYS so existing rows still decrypt.
    FIELD_ENCRYPTION_KEY_VERSION = os.environ.get("FIELD_ENCRYPTION_KEY_VERSION", "v1")
    FIELD_ENCRYPTION_KEYS = {
        FIELD_ENCRYPTION_KEY_VERSION: os.environ.get(
            "FIELD_ENCRYPTION_KEY", _default_field_key(SECRET_KEY)
        ),
    }

    # Used when a store has no tax_rate_bps of its own (800 = 8.00%)
    DEFAULT_TAX_RATE_BPS = int(os.environ.get("DEFAULT_TAX_RATE_BPS", "800"))

    # Ascending (tier, minimum lifetime spend in cents)
    LOYALTY_TIER_THRESHOLDS = (
        ("BRONZE", 0),
        ("SILVER", 50_000),
        ("GOLD", 200_000),
        ("PLATINUM", 500_000),
    )

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    RECEIPT_WIDTH = 40

    # Callable taking the rendered receipt text; None logs it
    RECEIPT_PRINTER = None

    CORS_ALLOWED_ORIGINS = (
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    )
