"""
Async engine and session plumbing for the DuoSync store.

One engine and one session factory are cached per process. build_engine() and
build_session_factory() hand back the cached objects after the first call and
close_engine() forgets both, so the lifespan hook can rebuild them.

On first boot the configured database may not exist yet; ensure_database_exists()
connects to the maintenance database and creates it.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

import duosync.infra.database.models  # noqa: F401  (fills Base.metadata)
from duosync.infra.database.models.base import Base

if TYPE_CHECKING:
    from duosync.config import PostgresConfig

logger = logging.getLogger(__name__)

_SAFE_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_ASYNC_SCHEME = "postgresql+asyncpg://"
_MAINTENANCE_DB = "postgres"

# Statements create_all() cannot express; each must be idempotent
_EXTRA_DDL = (
    "CREATE INDEX IF NOT EXISTS busy_intervals_recurring_idx "
    "ON busy_intervals (user_id, start_ts) WHERE recurrence_rule IS NOT NULL",
)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _resolve_config(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from duosync.config import load_postgres_config
    return load_postgres_config()


def _make_async_url(url: str) -> str:
    """Rewrite a plain postgres DSN so SQLAlchemy drives it through asyncpg."""
    if url.startswith(_ASYNC_SCHEME):
        return url
    scheme, sep, rest = url.partition("://")
    if sep and scheme in ("postgres", "postgresql"):
        return _ASYNC_SCHEME + rest
    return url


def _parse_db_name_and_postgres_url(url: str) -> tuple[str, str]:
    """Split a DSN into its database name and a DSN for the maintenance database."""
    parts = urlparse(url)
    name = parts.path.strip("/").split("?")[0].strip() or _MAINTENANCE_DB
    maintenance = parts._replace(
        scheme=parts.scheme.split("+")[0],
        path="/" + _MAINTENANCE_DB,
    )
    return name, urlunparse(maintenance)


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> None:
    """
    Create the configured database when the server does not have it yet.

    Unreachable servers are tolerated (the engine will surface the real error
    later) and names that are not plain identifiers are never interpolated.
    """
    name, maintenance_url = _parse_db_name_and_postgres_url(_resolve_config(config).url)
    if name == _MAINTENANCE_DB:
        return
    if _SAFE_IDENTIFIER.match(name) is None:
        logger.warning("Refusing to auto-create database with unsafe name %r", name)
        return

    try:
        conn = await asyncpg.connect(maintenance_url)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("Maintenance database unreachable, skipping auto-create: %s", exc)
        return
    try:
        found = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", name)
        if found is None:
            await conn.execute(f'CREATE DATABASE "{name}"')
            logger.info("Created database %s", name)
    finally:
        await conn.close()


def _engine_options(config: "PostgresConfig", echo: bool, use_null_pool: bool) -> dict[str, Any]:
    options: dict[str, Any] = {
        "echo": echo,
        # Stored instants are compared in UTC regardless of server defaults
        "connect_args": {
            "server_settings": {"application_name": config.application_name, "timezone": "UTC"},
        },
    }
    if use_null_pool:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
        )
    return options


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Return the process-wide AsyncEngine, creating it on first use.

    use_null_pool disables pooling, which suits short-lived scripts and tests.
    """
    global _engine
    if _engine is None:
        config = _resolve_config(config)
        options = _engine_options(config, config.echo if echo is None else echo, use_null_pool)
        _engine = create_async_engine(_make_async_url(config.url), **options)
        if use_null_pool:
            logger.info("Database engine ready (no pooling)")
        else:
            logger.info(
                "Database engine ready",
                extra={"pool_size": config.pool_size, "max_overflow": config.max_overflow},
            )
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine or build_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def _apply_extra_ddl(conn: AsyncConnection) -> None:
    for statement in _EXTRA_DDL:
        await conn.execute(text(statement))


async def init_db(config: Optional["PostgresConfig"] = None, *, drop_all: bool = False) -> None:
    """Create tables and partial indexes for local runs. drop_all wipes them first."""
    engine = build_engine(_resolve_config(config))
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("Dropping every DuoSync table before create")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        await _apply_extra_ddl(conn)
    logger.info("Schema ready", extra={"tables": sorted(Base.metadata.tables)})


async def close_engine() -> None:
    global _engine, _session_factory
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
