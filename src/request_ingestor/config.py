"""Configuration loading for the request ingestor."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///requests.db"
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_BATCH_TIMEOUT = 300.0
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 3000

_TRUTHY = {"1", "true", "yes", "on"}


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    apply_schema: bool = True
    batch_timeout: float = DEFAULT_BATCH_TIMEOUT
    log_level: str = "INFO"
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT

    @property
    def batch_timeout_seconds(self) -> Optional[float]:
        """Timeout for the write phase, or ``None`` when disabled."""
        return self.batch_timeout if self.batch_timeout > 0 else None

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            # Compose a Postgres URL when only the POSTGRES_* variables are set.
            pg_db = os.getenv("POSTGRES_DB")
            if pg_db:
                user = os.getenv("POSTGRES_USER", "postgres")
                password = os.getenv("POSTGRES_PASSWORD", "postgres")
                host = os.getenv("POSTGRES_HOST", "localhost")
                port = os.getenv("POSTGRES_PORT", "5432")
                database_url = (
                    f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{pg_db}"
                )
            else:
                database_url = DEFAULT_DATABASE_URL

        return cls(
            database_url=database_url,
            connect_timeout=max(
                0.0,
                _float(os.getenv("DATABASE_CONNECT_TIMEOUT"), DEFAULT_CONNECT_TIMEOUT),
            ),
            apply_schema=_bool(os.getenv("DATABASE_APPLY_SCHEMA"), True),
            batch_timeout=_float(os.getenv("BATCH_TIMEOUT"), DEFAULT_BATCH_TIMEOUT),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            http_host=os.getenv("HTTP_HOST", DEFAULT_HTTP_HOST),
            http_port=_int(os.getenv("HTTP_PORT"), DEFAULT_HTTP_PORT),
        )
