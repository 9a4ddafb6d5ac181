# backend/storefront/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///storefront.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    APP_NAME = os.environ.get("APP_NAME", "Beauty Storefront")
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    EXPOSE_ERROR_DETAILS = _env_bool("EXPOSE_ERROR_DETAILS", False)

    # Signed tokens (access / refresh / verification / password-reset)
    TOKEN_SECRET = os.environ.get("TOKEN_SECRET") or SECRET_KEY
    ACCESS_TOKEN_TTL_SECONDS = _env_int("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_TOKEN_TTL_SECONDS = _env_int("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 3600)
    VERIFICATION_TOKEN_TTL_SECONDS = _env_int("VERIFICATION_TOKEN_TTL_SECONDS", 24 * 3600)
    RESET_TOKEN_TTL_SECONDS = _env_int("RESET_TOKEN_TTL_SECONDS", 3600)

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Rate limiting: "memory" (single process) or "database" (shared)
    RATE_LIMIT_STORE = os.environ.get("RATE_LIMIT_STORE", "memory")
    AUTH_RATE_LIMIT_MAX_ATTEMPTS = _env_int("AUTH_RATE_LIMIT_MAX_ATTEMPTS", 5)
    AUTH_RATE_LIMIT_WINDOW_SECONDS = _env_int("AUTH_RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
    CONTACT_RATE_LIMIT_MAX_ATTEMPTS = _env_int("CONTACT_RATE_LIMIT_MAX_ATTEMPTS", 5)
    CONTACT_RATE_LIMIT_WINDOW_SECONDS = _env_int("CONTACT_RATE_LIMIT_WINDOW_SECONDS", 3600)

    # Calendar day used for order numbers (IANA zone name)
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    # Mail: primary transport, optional fallback transport.
    # Backends: "smtp", "log", "memory". Empty server -> log only.
    MAIL_BACKEND = os.environ.get("MAIL_BACKEND", "smtp")
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "")
    MAIL_PORT = _env_int("MAIL_PORT", 587)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", False)
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_TIMEOUT_SECONDS = _env_int("MAIL_TIMEOUT_SECONDS", 10)

    MAIL_FALLBACK_BACKEND = os.environ.get("MAIL_FALLBACK_BACKEND", "smtp")
    MAIL_FALLBACK_SERVER = os.environ.get("MAIL_FALLBACK_SERVER", "")
    MAIL_FALLBACK_PORT = _env_int("MAIL_FALLBACK_PORT", 587)
    MAIL_FALLBACK_USERNAME = os.environ.get("MAIL_FALLBACK_USERNAME")
    MAIL_FALLBACK_PASSWORD = os.environ.get("MAIL_FALLBACK_PASSWORD")
    MAIL_FALLBACK_USE_SSL = _env_bool("MAIL_FALLBACK_USE_SSL", False)
    MAIL_FALLBACK_USE_TLS = _env_bool("MAIL_FALLBACK_USE_TLS", True)

    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@storefront.local")
    CONTACT_EMAIL = os.environ.get("CONTACT_EMAIL", "hello@storefront.local")

    # Email outbox
    EMAIL_DELIVER_INLINE = _env_bool("EMAIL_DELIVER_INLINE", True)
    EMAIL_MAX_ATTEMPTS = _env_int("EMAIL_MAX_ATTEMPTS", 5)
    EMAIL_RETRY_BACKOFF_SECONDS = _env_int("EMAIL_RETRY_BACKOFF_SECONDS", 60)
    EMAIL_MAX_WORKERS = _env_int("EMAIL_MAX_WORKERS", 4)
