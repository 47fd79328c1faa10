"""
Environment-driven settings.

Values are read on every call so tests (and long-lived workers) can change
the environment without re-importing modules.
"""

from __future__ import annotations

import os

APP_VERSION = "1.0.0"

# Global ceiling on simultaneously featured projects. Not configurable.
FEATURED_PROJECT_LIMIT = 3


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def database_url() -> str:
    return os.environ.get("DATABASE_URL", "").strip()


def db_pool_min_size() -> int:
    return max(1, _env_int("DB_POOL_MIN_SIZE", 1))


def db_pool_max_size() -> int:
    return max(db_pool_min_size(), _env_int("DB_POOL_MAX_SIZE", 10))


def db_command_timeout_s() -> float:
    return float(max(1, _env_int("DB_COMMAND_TIMEOUT_S", 30)))


def api_prefix() -> str:
    prefix = _env_str("API_PREFIX", "/api/v1").rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def environment() -> str:
    return _env_str("ENVIRONMENT", "development").lower()


def log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if not origins and environment() != "production":
        # Local frontend dev servers.
        origins = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"]
    return origins


def public_api_url() -> str:
    return _env_str("PUBLIC_API_URL", "http://localhost:8000").rstrip("/")


def jwt_secret() -> str:
    # Local default keeps development simple.
    # In production, set JWT_SECRET in environment.
    return _env_str("JWT_SECRET", "dev-change-this-secret")


def jwt_algorithm() -> str:
    return _env_str("JWT_ALG", "HS256")


def access_token_expire_minutes() -> int:
    return _env_int("ACCESS_TOKEN_EXPIRE_MIN", 60 * 24)


def upload_dir() -> str:
    return _env_str("UPLOAD_DIR", "./uploads")


def upload_base_url() -> str:
    return _env_str("UPLOAD_BASE_URL", "http://localhost:8000/uploads").rstrip("/")


def signed_url_expire_s() -> int:
    return max(1, _env_int("SIGNED_URL_EXPIRE_S", 3600))


def admin_username() -> str:
    return _env_str("ADMIN_USERNAME", "admin")


def admin_password() -> str:
    return _env_str("ADMIN_PASSWORD", "admin123")


def bcrypt_rounds() -> int:
    return min(max(_env_int("BCRYPT_ROUNDS", 10), 4), 16)
