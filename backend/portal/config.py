# backend/portal/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int, minimum: int | None = None) -> int:
    value = int(os.environ.get(name, str(default)))
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/portal.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///portal.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 3+1 promotion
    FREE_BOX_TRIGGER_BOXES = _int_env("FREE_BOX_TRIGGER_BOXES", 3, minimum=1)
    MONTHLY_FREE_BOX_CAP = _int_env("MONTHLY_FREE_BOX_CAP", 10, minimum=0)

    # One-time apron grant for a business's first order
    FIRST_ORDER_APRON_QUANTITY = _int_env("FIRST_ORDER_APRON_QUANTITY", 5, minimum=1)

    # Monthly usage is keyed on the calendar month in this zone
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Seoul")

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
