"""Settings loaded from environment variables (+ optional .env).

All variables use the ``TODO_`` prefix. ``load_settings`` is called once at
startup; a missing or weak signing secret is a fatal ``ConfigError``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from errors import ConfigError

ENV_PREFIX = "TODO"

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 120
BCRYPT_ROUNDS = 10
MIN_SECRET_LENGTH = 16
AUTH_RATE_LIMIT = "10/minute"
STORAGE_BACKENDS = ("json", "sql")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    v = env.get(name)
    return default if v is None or v.strip() == "" else v.strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _get_list(env: Mapping[str, str], name: str, default: List[str]) -> List[str]:
    raw = _get(env, name)
    if not raw:
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    jwt_algorithm: str = ALGORITHM
    token_ttl_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
    bcrypt_rounds: int = BCRYPT_ROUNDS

    storage_backend: str = "json"
    db_path: Path = Path("db.json")
    database_url: str = "sqlite:///./todos.db"

    api_prefix: str = ""
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    allowed_hosts: List[str] = field(default_factory=lambda: ["*"])
    rate_limit_enabled: bool = True

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3000

    def __post_init__(self):
        validate_settings(self)


def validate_settings(settings: Settings) -> None:
    if not settings.jwt_secret:
        raise ConfigError(f"{_k('JWT_SECRET')} is not set")
    if len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise ConfigError(
            f"{_k('JWT_SECRET')} must be at least {MIN_SECRET_LENGTH} characters"
        )
    if settings.token_ttl_minutes <= 0:
        raise ConfigError(f"{_k('TOKEN_TTL_MINUTES')} must be positive")
    if not 4 <= settings.bcrypt_rounds <= 31:
        raise ConfigError(f"{_k('BCRYPT_ROUNDS')} must be between 4 and 31")
    if settings.storage_backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"{_k('STORAGE_BACKEND')} must be one of {', '.join(STORAGE_BACKENDS)}"
        )
    if settings.api_prefix and not settings.api_prefix.startswith("/"):
        raise ConfigError(f"{_k('API_PREFIX')} must start with '/'")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``env`` (defaults to ``os.environ`` after loading .env)."""
    if env is None:
        load_dotenv(override=False)
        env = os.environ

    secret = _get(env, _k("JWT_SECRET")) or _get(env, "JWT_SECRET")

    return Settings(
        jwt_secret=secret,
        token_ttl_minutes=_get_int(env, _k("TOKEN_TTL_MINUTES"), ACCESS_TOKEN_EXPIRE_MINUTES),
        bcrypt_rounds=_get_int(env, _k("BCRYPT_ROUNDS"), BCRYPT_ROUNDS),
        storage_backend=_get(env, _k("STORAGE_BACKEND"), "json").lower(),
        db_path=Path(_get(env, _k("DB_PATH"), "db.json")).expanduser(),
        database_url=_get(env, _k("DATABASE_URL"), "sqlite:///./todos.db"),
        api_prefix=_get(env, _k("API_PREFIX"), "").rstrip("/"),
        cors_origins=_get_list(env, _k("CORS_ORIGINS"), ["*"]),
        allowed_hosts=_get_list(env, _k("ALLOWED_HOSTS"), ["*"]),
        rate_limit_enabled=_get_bool(env, _k("RATE_LIMIT_ENABLED"), True),
        log_level=_get(env, _k("LOG_LEVEL"), "INFO").upper(),
        host=_get(env, _k("HOST"), "127.0.0.1"),
        port=_get_int(env, _k("PORT"), 3000),
    )
