# backend/duka/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///duka.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Whole cart in one transaction. False restores per-line commits.
    CHECKOUT_ATOMIC = _env_flag("DUKA_CHECKOUT_ATOMIC", True)

    # Day and month boundaries for earnings windows
    BUSINESS_TIMEZONE = os.environ.get("DUKA_BUSINESS_TIMEZONE", "UTC")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "DUKA_CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]
