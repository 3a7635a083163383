# shelfguard/config.py
from __future__ import annotations

import os
import re
from datetime import timedelta


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value) -> timedelta:
    """
    Parse a lifetime such as "30s", "15m", "1h", "7d" or a bare number of seconds.

    timedelta and int values pass through unchanged (tests override config
    with either form).
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _database_uri() -> str:
    # DATABASE_URL wins; otherwise assemble from the DB_* pieces when a host is set
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    host = os.environ.get("DB_HOST")
    if not host:
        return "sqlite:///shelfguard.sqlite3"

    dialect = os.environ.get("DB_DIALECT", "postgresql")
    if dialect == "postgres":
        dialect = "postgresql"
    user = os.environ.get("DB_USER", "postgres")
    password = os.environ.get("DB_PASSWORD", "")
    port = os.environ.get("DB_PORT", "5432")
    name = os.environ.get("DB_NAME", "shelfguard_db")
    credentials = f"{user}:{password}" if password else user
    return f"{dialect}://{credentials}@{host}:{port}/{name}"


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGIN")
    if not raw:
        return ["http://localhost:3000"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    ENV_NAME = os.environ.get("APP_ENV", os.environ.get("FLASK_ENV", "development"))
    PORT = _env_int("PORT", 3000)
    API_VERSION = os.environ.get("API_VERSION", "v1")

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT
    JWT_SECRET = os.environ.get("JWT_SECRET", "your_super_secret_jwt_key")
    JWT_EXPIRES_IN = os.environ.get("JWT_EXPIRES_IN", "1h")
    REFRESH_TOKEN_SECRET = os.environ.get("REFRESH_TOKEN_SECRET", "your_refresh_secret")
    REFRESH_TOKEN_EXPIRES_IN = os.environ.get("REFRESH_TOKEN_EXPIRES_IN", "7d")

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Firebase Cloud Messaging
    FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID")
    FIREBASE_PRIVATE_KEY = os.environ.get("FIREBASE_PRIVATE_KEY")
    FIREBASE_CLIENT_EMAIL = os.environ.get("FIREBASE_CLIENT_EMAIL")

    CORS_ORIGINS = _cors_origins()

    # Fixed-window rate limit applied per client address on /api routes
    RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_WINDOW_MS = _env_int("RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000)
    RATE_LIMIT_MAX_REQUESTS = _env_int("RATE_LIMIT_MAX_REQUESTS", 100)

    MAX_CONTENT_LENGTH = _env_int("MAX_FILE_SIZE", 5 * 1024 * 1024)

    NOTIFICATION_SCHEDULER_ENABLED = _env_flag("NOTIFICATION_SCHEDULER_ENABLED", False)
    NOTIFICATION_SCHEDULER_CRON = os.environ.get("NOTIFICATION_SCHEDULER_CRON", "0 9 * * *")
