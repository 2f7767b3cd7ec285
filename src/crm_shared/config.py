"""
Centralized configuration for the CRM shared toolkit.

- Dataclass settings, validated in __post_init__.
- Loads from OS env; a .env file at the repo root is read first when present.
- Immutable singleton via functools.lru_cache.
- Secrets never logged (masked).
"""

from __future__ import annotations

import functools
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, cast
from urllib.parse import urlparse

from dotenv import load_dotenv

# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _mask_secret(value: Optional[str]) -> str:
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return value[:2] + "…" + value[-2:]


def _mask_url(value: Optional[str]) -> str:
    if not value:
        return "<unset>"
    parsed = urlparse(value)
    if parsed.password:
        return value.replace(parsed.password, "***")
    return value


def _get_env_str(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    v = os.getenv(key, default)
    if required and (v is None or str(v).strip() == ""):
        raise ValueError(f"Missing required env var: {key}")
    return v


def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "t", "yes", "y", "on"}


def _get_env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be an integer")


def _get_env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be a number")


def _get_env_json_list(key: str) -> tuple[dict[str, Any], ...]:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return ()
    try:
        rows = json.loads(v)
    except json.JSONDecodeError:
        raise ValueError(f"Env var {key} must be a JSON list")
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError(f"Env var {key} must be a JSON list of objects")
    return tuple(rows)


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


def _validate_url(value: Optional[str], *, key: str, allowed_schemes: tuple[str, ...]) -> Optional[str]:
    if value in (None, ""):
        return None
    parsed = urlparse(value)
    if parsed.scheme not in allowed_schemes or not parsed.netloc:
        raise ValueError(f"{key} must be a valid URL with scheme in {allowed_schemes}")
    return value


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
EnvName = Literal["local", "dev", "staging", "prod"]
LogFormat = Literal["json", "console"]


@dataclass(frozen=True)
class Settings:
    # Environment
    environment: EnvName = "local"
    debug: bool = False

    # Key-value / stream store
    redis_url: str = "redis://localhost:6379/0"
    redis_password: Optional[str] = None
    redis_socket_timeout: float = 5.0
    redis_max_connections: int = 50

    # Source of truth for tenant records
    database_url: str = "sqlite+aiosqlite:///./dev.db"

    # Streams
    stream_block_ms: int = 5000
    stream_batch_size: int = 1

    # Background repopulation pool
    background_max_concurrency: int = 10

    # Indexer table override; empty means the built-in table
    tenant_indexers: tuple[dict[str, Any], ...] = ()

    # Observability
    log_level: str = "INFO"
    log_format: Optional[LogFormat] = None

    # Paths
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent)

    # Derived/computed flags (filled in __post_init__)
    is_prod: bool = field(init=False)
    is_staging: bool = field(init=False)
    is_dev: bool = field(init=False)
    is_local: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "environment",
            _validate_choice(self.environment, choices=("local", "dev", "staging", "prod"), key="ENVIRONMENT"),
        )
        if self.log_format is not None:
            _validate_choice(self.log_format, choices=("json", "console"), key="LOG_FORMAT")

        _validate_url(self.redis_url, key="REDIS_URL", allowed_schemes=("redis", "rediss"))
        if not self.redis_url:
            raise ValueError("REDIS_URL must be set")
        if "://" not in self.database_url:
            raise ValueError("DATABASE_URL must be a SQLAlchemy URL")

        if self.redis_socket_timeout <= 0:
            raise ValueError("REDIS_SOCKET_TIMEOUT must be > 0")
        if self.redis_max_connections <= 0:
            raise ValueError("REDIS_MAX_CONNECTIONS must be > 0")
        if self.stream_block_ms < 0:
            raise ValueError("STREAM_BLOCK_MS must be >= 0")
        if self.stream_batch_size <= 0:
            raise ValueError("STREAM_BATCH_SIZE must be > 0")
        if self.background_max_concurrency <= 0:
            raise ValueError("BACKGROUND_MAX_CONCURRENCY must be > 0")

        if not re.fullmatch(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL", self.log_level.strip()):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

        env = self.environment
        object.__setattr__(self, "is_prod", env == "prod")
        object.__setattr__(self, "is_staging", env == "staging")
        object.__setattr__(self, "is_dev", env == "dev")
        object.__setattr__(self, "is_local", env == "local")

    # Safe dict (for debug prints without secrets)
    def safe_dict(self) -> dict:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "redis_url": _mask_url(self.redis_url),
            "redis_password": _mask_secret(self.redis_password),
            "redis_socket_timeout": self.redis_socket_timeout,
            "redis_max_connections": self.redis_max_connections,
            "database_url": _mask_url(self.database_url),
            "stream_block_ms": self.stream_block_ms,
            "stream_batch_size": self.stream_batch_size,
            "background_max_concurrency": self.background_max_concurrency,
            "tenant_indexers": len(self.tenant_indexers) or "<default>",
            "log_level": self.log_level,
            "log_format": self.log_format or "<auto>",
            "base_dir": str(self.base_dir),
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = logging.getLogger(__name__)


def _default_redis_url() -> str:
    host = os.getenv("REDIS_HOST", "127.0.0.1")
    port = os.getenv("REDIS_PORT", "6379")
    return f"redis://{host}:{port}/0"


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    env_file = Path(__file__).resolve().parent.parent.parent / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=str(env_file), override=False)

    settings = Settings(
        environment=cast(EnvName, _get_env_str("ENVIRONMENT", "local") or "local"),
        debug=_get_env_bool("DEBUG", False),
        redis_url=_get_env_str("REDIS_URL", None) or _default_redis_url(),
        redis_password=_get_env_str("REDIS_PASSWORD", None),
        redis_socket_timeout=_get_env_float("REDIS_SOCKET_TIMEOUT", 5.0),
        redis_max_connections=_get_env_int("REDIS_MAX_CONNECTIONS", 50),
        database_url=_get_env_str("DATABASE_URL", "sqlite+aiosqlite:///./dev.db") or "sqlite+aiosqlite:///./dev.db",
        stream_block_ms=_get_env_int("STREAM_BLOCK_MS", 5000),
        stream_batch_size=_get_env_int("STREAM_BATCH_SIZE", 1),
        background_max_concurrency=_get_env_int("BACKGROUND_MAX_CONCURRENCY", 10),
        tenant_indexers=_get_env_json_list("TENANT_INDEXERS"),
        log_level=_get_env_str("LOG_LEVEL", "INFO") or "INFO",
        log_format=cast(Optional[LogFormat], _get_env_str("LOG_FORMAT", None)),
    )

    _logger.info("Settings loaded", extra={"settings": settings.safe_dict()})
    return settings
