"""Request-scoped providers wired into the routers with Depends()."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from duosync.config import TimelineConfig, load_timeline_config
from duosync.services import IntervalService, TimelineService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One session per request; committed when the handler returns normally."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_timeline_config(request: Request) -> TimelineConfig:
    config = getattr(request.app.state, "timeline_config", None)
    if config is None:
        config = load_timeline_config()
        request.app.state.timeline_config = config
    return config


def get_timeline_service(
    request: Request,
    config: TimelineConfig = Depends(get_timeline_config),
) -> TimelineService:
    """TimelineService opens its own sessions so both users can be fetched concurrently."""
    return TimelineService(request.app.state.session_factory, config)


def get_interval_service(
    session: AsyncSession = Depends(get_session),
    config: TimelineConfig = Depends(get_timeline_config),
) -> IntervalService:
    return IntervalService(session, config)
