# backend/fieldcash/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fieldcash.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fieldcash.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # What happens when a collection exceeds the amount a shop owes:
    # "floor" (discard excess), "reject", or "credit" (allow negative balance)
    OVERCOLLECTION_POLICY = os.environ.get("OVERCOLLECTION_POLICY", "floor")

    # Whether verify() may replace a reconciliation that close-day already closed
    ALLOW_VERIFY_AFTER_CLOSE = _env_flag("ALLOW_VERIFY_AFTER_CLOSE", False)

    # Callable(request) -> RequestContext | None. None selects the header resolver.
    IDENTITY_RESOLVER = None
