"""
duosync.config.timeline – limits and defaults for timeline computation.

Env vars: TIMELINE_TIMEOUT_SECONDS, TIMELINE_DEFAULT_TIMEZONE, MAX_INTERVAL_SPAN_HOURS,
TIMELINE_RATE_LIMIT.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from duosync.config.validators import validate_positive_int

_RATE_LIMIT_PATTERN = re.compile(r"^\d+\s*/\s*(second|minute|hour|day)$")


@dataclass(frozen=True)
class TimelineConfig:
    """Timeline request budget, default display timezone and interval limits."""

    timeout_seconds: float = 5.0
    """Upper bound for one timeline request (fetch + computation)."""

    default_timezone: str = "UTC"
    """Display timezone when neither the caller nor the user record sets one."""

    max_interval_span_hours: int = 7 * 24
    """Longest allowed busy interval; keeps recurrence and merge cost bounded."""

    rate_limit: str = "20/minute"
    """slowapi limit string applied per client to the timeline endpoints."""

    def __post_init__(self) -> None:
        if not isinstance(self.timeout_seconds, (int, float)) or self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds!r}")
        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"default_timezone {self.default_timezone!r} is not a known IANA zone") from exc
        validate_positive_int(self.max_interval_span_hours, "max_interval_span_hours")
        if not _RATE_LIMIT_PATTERN.match(self.rate_limit.strip()):
            raise ValueError(f"rate_limit must look like '20/minute', got {self.rate_limit!r}")

    @classmethod
    def from_env(cls, **overrides: object) -> TimelineConfig:
        def _get(attr: str, var: str, default: str) -> str:
            v = overrides.get(attr)
            return str(v) if v is not None else os.environ.get(var, default)

        return cls(
            timeout_seconds=float(_get("timeout_seconds", "TIMELINE_TIMEOUT_SECONDS", "5")),
            default_timezone=_get("default_timezone", "TIMELINE_DEFAULT_TIMEZONE", "UTC"),
            max_interval_span_hours=int(_get("max_interval_span_hours", "MAX_INTERVAL_SPAN_HOURS", "168")),
            rate_limit=_get("rate_limit", "TIMELINE_RATE_LIMIT", "20/minute"),
        )


def load_timeline_config(**overrides: object) -> TimelineConfig:
    """Load and validate timeline config from env (with optional overrides)."""
    return TimelineConfig.from_env(**overrides)
