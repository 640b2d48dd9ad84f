"""TimelineService: fetch a day's intervals and run them through the timeline pipeline."""
from __future__ import annotations

import asyncio
import datetime as _dt
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import SQLAlchemyError

from duosync.config import TimelineConfig, load_timeline_config
from duosync.core.exceptions import DataFetchError, RecurrenceRuleError, ValidationError
from duosync.infra.database.repositories import (
    IntervalRepository,
    RecurrenceExceptionRepository,
    UserRepository,
)
from duosync.timeline import (
    Category,
    DayWindow,
    Interval,
    RecurrenceOverride,
    Timeline,
    build_shared_segments,
    build_timeline_segments,
    check_rule_consistency,
    compute_day,
    coverage,
    day_window,
    parse_recurrence_rule,
)
from duosync.timeline.window import ensure_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "could not load availability"


@dataclass
class DayData:
    """Everything the pipeline needs for one set of users on one day."""

    intervals: List[Interval] = field(default_factory=list)
    overrides: List[RecurrenceOverride] = field(default_factory=list)
    invalid_rule_ids: List[int] = field(default_factory=list)


def zone_for(name: str) -> ZoneInfo:
    """ZoneInfo for an IANA name; ValidationError when unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(
            f"Unknown timezone {name!r}", code="INVALID_TIMEZONE", details={"field": "timezone"}
        ) from None


def interval_from_row(row: Any) -> Interval:
    """Convert a BusyInterval row. Raises RecurrenceRuleError for a bad stored rule."""
    rule = None
    if row.recurrence_rule is not None:
        rule = parse_recurrence_rule(row.recurrence_rule)
        check_rule_consistency(rule)
    return Interval(
        id=row.id,
        user_id=row.user_id,
        start=ensure_utc(row.start_ts),
        end=ensure_utc(row.end_ts),
        category=Category(row.category),
        description=row.description,
        recurrence=rule,
    )


def override_from_row(row: Any) -> RecurrenceOverride:
    return RecurrenceOverride(
        recurrence_id=row.recurrence_id,
        exception_date=row.exception_date,
        modified=row.modified_interval,
    )


async def gather_or_cancel(*aws: Awaitable[Any]) -> List[Any]:
    """Run awaitables concurrently; the first failure cancels the rest and propagates."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class TimelineService:
    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        config: Optional[TimelineConfig] = None,
    ) -> None:
        self._session_factory = session_factory
        self._config = config or load_timeline_config()

    @property
    def config(self) -> TimelineConfig:
        return self._config

    async def resolve_timezone(self, user_id: Optional[int], requested: Optional[str]) -> str:
        """Requested zone if given, else the user's stored zone, else the configured default."""
        if requested:
            zone_for(requested)
            return requested
        if user_id is not None:
            try:
                async with self._session_factory() as session:
                    stored = await UserRepository(session).get_timezone(user_id)
            except (SQLAlchemyError, OSError) as exc:
                raise DataFetchError(FETCH_FAILED_MESSAGE, cause=exc) from exc
            if stored:
                try:
                    ZoneInfo(stored)
                    return stored
                except (ZoneInfoNotFoundError, ValueError):
                    logger.warning("User %s has unknown stored timezone %r; using default", user_id, stored)
        return self._config.default_timezone

    async def load_day(self, user_ids: Sequence[int], window: DayWindow) -> DayData:
        """Fetch intervals and exceptions for ``user_ids`` on one dedicated session."""
        try:
            async with self._session_factory() as session:
                rows = await IntervalRepository(session).list_for_window(user_ids, window.start, window.end)
                data = DayData()
                for row in rows:
                    try:
                        data.intervals.append(interval_from_row(row))
                    except RecurrenceRuleError as exc:
                        logger.warning(
                            "Skipping interval %s: stored recurrence rule is invalid (%s)", row.id, exc,
                            extra={"interval_id": row.id, "user_id": row.user_id},
                        )
                        data.invalid_rule_ids.append(row.id)

                recurring = [i for i in data.intervals if i.is_recurring]
                if recurring:
                    # Occurrences that began on earlier days can still overlap this one
                    lookback = max(i.duration for i in recurring).days + 1
                    exc_rows = await RecurrenceExceptionRepository(session).list_for_recurrences(
                        [i.id for i in recurring],
                        window.date - _dt.timedelta(days=lookback),
                        window.date,
                    )
                    data.overrides = [override_from_row(r) for r in exc_rows]
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Interval fetch failed for users %s: %s", list(user_ids), exc)
            raise DataFetchError(FETCH_FAILED_MESSAGE, details={"user_ids": list(user_ids)}, cause=exc) from exc
        return data

    async def get_timeline(
        self,
        date: _dt.date,
        user_ids: Sequence[int],
        timezone: Optional[str] = None,
    ) -> Timeline:
        """Single-user timeline; several ids pool their intervals into one view."""
        if not user_ids:
            raise ValidationError("At least one user id is required", details={"field": "user_ids"})
        started = time.perf_counter()
        tz_name = await self.resolve_timezone(user_ids[0], timezone)
        window = day_window(date)

        data = await self.load_day(user_ids, window)
        day = compute_day(data.intervals, window, data.overrides)
        segments = build_timeline_segments(day.merged, day.free, zone_for(tz_name))

        self._log_calculated(date, list(user_ids), len(segments), started, data.invalid_rule_ids)
        return Timeline(date=date, timezone=tz_name, segments=segments, invalid_rule_ids=data.invalid_rule_ids)

    async def compare(
        self,
        date: _dt.date,
        current_user_id: int,
        other_user_ids: Sequence[int],
        timezone: Optional[str] = None,
    ) -> Timeline:
        """
        Shared view of the current user against one or more others:
        sleep (anyone asleep) > other (current user busy) > match (everyone free) > available.
        """
        others = list(dict.fromkeys(other_user_ids))
        if not others:
            raise ValidationError("At least one other user id is required", details={"field": "other_user_ids"})
        if current_user_id in others:
            raise ValidationError(
                "The current user cannot be compared with themselves", details={"field": "other_user_ids"}
            )
        started = time.perf_counter()
        tz_name = await self.resolve_timezone(current_user_id, timezone)
        window = day_window(date)

        loaded = await gather_or_cancel(
            *(self.load_day([user_id], window) for user_id in [current_user_id, *others])
        )
        covered = [
            coverage(compute_day(data.intervals, window, data.overrides).concrete) for data in loaded
        ]
        segments = build_shared_segments(covered[0], covered[1:], window, zone_for(tz_name))

        invalid = [interval_id for data in loaded for interval_id in data.invalid_rule_ids]
        self._log_calculated(date, [current_user_id, *others], len(segments), started, invalid)
        return Timeline(date=date, timezone=tz_name, segments=segments, invalid_rule_ids=invalid)

    def _log_calculated(
        self,
        date: _dt.date,
        user_ids: List[int],
        segment_count: int,
        started: float,
        invalid_rule_ids: List[int],
    ) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "Timeline calculated: date=%s users=%s segments=%d (%.2f ms)",
            date.isoformat(), user_ids, segment_count, duration_ms,
            extra={
                "date": date.isoformat(),
                "user_ids": user_ids,
                "segment_count": segment_count,
                "duration_ms": duration_ms,
                "invalid_rule_ids": invalid_rule_ids,
            },
        )
