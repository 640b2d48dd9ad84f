"""
duosync.config.postgres – where the interval store lives and how its pool behaves.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from duosync.config.validators import parse_bool, validate_nonnegative_int, validate_positive_int

_DEFAULT_URL = "postgresql://localhost/duosync"
_DEFAULT_APP_NAME = "duosync-backend"
_ACCEPTED_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")


def _check_dsn(url: str) -> str:
    url = (url or "").strip()
    if not url.startswith(_ACCEPTED_SCHEMES):
        raise ValueError(f"DATABASE_URL must use one of {', '.join(_ACCEPTED_SCHEMES)}; got {url!r}")
    return url


@dataclass(frozen=True)
class PostgresConfig:
    """Connection string plus SQLAlchemy pool knobs, checked when constructed."""

    url: str
    """Plain or asyncpg DSN; the engine adds the +asyncpg driver when missing."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    """Seconds before a pooled connection is replaced."""

    echo: bool = False
    application_name: str = _DEFAULT_APP_NAME

    def __post_init__(self) -> None:
        _check_dsn(self.url)
        for name in ("pool_size", "pool_timeout", "pool_recycle"):
            validate_positive_int(getattr(self, name), name)
        validate_nonnegative_int(self.max_overflow, "max_overflow")
        if type(self.echo) is not bool:
            raise ValueError(f"echo must be True or False, got {self.echo!r}")
        if not str(self.application_name or "").strip():
            raise ValueError("application_name must not be blank")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Read DATABASE_URL and DB_* variables; keyword overrides take precedence."""

        def _get(attr: str, var: str, default: object) -> object:
            value = overrides.get(attr)
            return value if value is not None else os.environ.get(var, default)

        return cls(
            url=_check_dsn(str(_get("url", "DATABASE_URL", _DEFAULT_URL))),
            pool_size=int(_get("pool_size", "DB_POOL_SIZE", 10)),  # type: ignore[arg-type]
            max_overflow=int(_get("max_overflow", "DB_MAX_OVERFLOW", 20)),  # type: ignore[arg-type]
            pool_timeout=int(_get("pool_timeout", "DB_POOL_TIMEOUT", 30)),  # type: ignore[arg-type]
            pool_recycle=int(_get("pool_recycle", "DB_POOL_RECYCLE", 1800)),  # type: ignore[arg-type]
            echo=parse_bool(_get("echo", "DB_ECHO", ""), default=False),
            application_name=str(_get("application_name", "DB_APPLICATION_NAME", _DEFAULT_APP_NAME)),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    return PostgresConfig.from_env(**overrides)
