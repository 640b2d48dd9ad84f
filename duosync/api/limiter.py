"""Shared slowapi limiter. The app registers it as app.state.limiter."""
from __future__ import annotations

from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from duosync.config import load_timeline_config

limiter = Limiter(key_func=get_remote_address)


@lru_cache(maxsize=1)
def timeline_rate_limit() -> str:
    """TIMELINE_RATE_LIMIT, read once."""
    return load_timeline_config().rate_limit
