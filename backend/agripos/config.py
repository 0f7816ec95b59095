# backend/agripos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/agripos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///agripos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Checkout
    VAT_RATE_BPS = int(os.environ.get("VAT_RATE_BPS", "1200"))  # 12% VAT
    ALLOW_PARTIAL_STOCK_DECREMENT = _env_bool("ALLOW_PARTIAL_STOCK_DECREMENT", True)

    # Online orders
    RESERVATION_TTL_HOURS = int(os.environ.get("RESERVATION_TTL_HOURS", "24"))
    ORDER_POLL_INTERVAL_SECONDS = int(os.environ.get("ORDER_POLL_INTERVAL_SECONDS", "30"))

    # Customer notifications: "log" or "webhook"
    NOTIFIER = os.environ.get("NOTIFIER", "log")
    NOTIFICATION_WEBHOOK_URL = os.environ.get("NOTIFICATION_WEBHOOK_URL")
    NOTIFICATION_TIMEOUT_SECONDS = float(os.environ.get("NOTIFICATION_TIMEOUT_SECONDS", "5"))
    NOTIFICATION_CHANNEL = os.environ.get("NOTIFICATION_CHANNEL", "sms")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    NOTIFIER = "log"
