"""IntervalService: validated CRUD for busy intervals and their per-occurrence exceptions."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from duosync.config import TimelineConfig, load_timeline_config
from duosync.core.exceptions import ConflictError, NotFoundError, ValidationError
from duosync.infra.database.models import BusyInterval, RecurrenceException
from duosync.infra.database.repositories import (
    IntervalRepository,
    RecurrenceExceptionRepository,
    UserRepository,
)
from duosync.timeline import Category, check_rule_consistency, parse_recurrence_rule, rule_to_dict
from duosync.timeline.recurrence import parse_instant
from duosync.timeline.window import ensure_utc

logger = logging.getLogger(__name__)

_OVERRIDE_KEYS = frozenset({"start_ts", "end_ts", "category"})


def _category(value: Any) -> str:
    try:
        return Category(value).value
    except ValueError:
        raise ValidationError(
            f"category must be one of sleep, busy, other; got {value!r}", details={"field": "category"}
        ) from None


def normalize_rule(raw: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Parse, consistency-check and re-serialize a submitted rule. Raises RecurrenceRuleError."""
    if raw is None:
        return None
    rule = parse_recurrence_rule(raw)
    check_rule_consistency(rule)
    return rule_to_dict(rule)


class IntervalService:
    def __init__(self, session: AsyncSession, config: Optional[TimelineConfig] = None) -> None:
        self._session = session
        self._config = config or load_timeline_config()
        self._repo = IntervalRepository(session)
        self._exc_repo = RecurrenceExceptionRepository(session)
        self._user_repo = UserRepository(session)

    def validate_span(self, start: _dt.datetime, end: _dt.datetime) -> None:
        if end <= start:
            raise ValidationError("end_ts must be after start_ts", details={"field": "end_ts"})
        limit = _dt.timedelta(hours=self._config.max_interval_span_hours)
        if end - start > limit:
            raise ValidationError(
                f"interval may span at most {self._config.max_interval_span_hours} hours",
                details={"field": "end_ts", "max_hours": self._config.max_interval_span_hours},
            )

    async def get(self, interval_id: int, user_id: int) -> BusyInterval:
        row = await self._repo.get_for_user(interval_id, user_id)
        if row is None:
            raise NotFoundError(f"Interval {interval_id} not found", details={"interval_id": interval_id})
        return row

    async def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[_dt.datetime] = None,
        end: Optional[_dt.datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[BusyInterval]:
        return await self._repo.list_for_user(user_id, start=start, end=end, skip=skip, limit=limit)

    async def create(self, user_id: int, data: Mapping[str, Any]) -> BusyInterval:
        if await self._user_repo.get_by_id(user_id) is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        start, end = ensure_utc(data["start_ts"]), ensure_utc(data["end_ts"])
        self.validate_span(start, end)
        row = await self._repo.create({
            "user_id": user_id,
            "start_ts": start,
            "end_ts": end,
            "category": _category(data["category"]),
            "description": data.get("description"),
            "recurrence_rule": normalize_rule(data.get("recurrence_rule")),
        })
        logger.info(
            "IntervalService: created interval %s for user %s (%s)", row.id, user_id, row.category,
            extra={"interval_id": row.id, "user_id": user_id, "recurring": row.recurrence_rule is not None},
        )
        return row

    async def update(self, interval_id: int, user_id: int, changes: Mapping[str, Any]) -> BusyInterval:
        row = await self.get(interval_id, user_id)
        data: Dict[str, Any] = {}
        if changes.get("start_ts") is not None:
            data["start_ts"] = ensure_utc(changes["start_ts"])
        if changes.get("end_ts") is not None:
            data["end_ts"] = ensure_utc(changes["end_ts"])
        if changes.get("category") is not None:
            data["category"] = _category(changes["category"])
        if "description" in changes:
            data["description"] = changes["description"]
        if "recurrence_rule" in changes:
            data["recurrence_rule"] = normalize_rule(changes["recurrence_rule"])
        if not data:
            return row
        self.validate_span(data.get("start_ts", row.start_ts), data.get("end_ts", row.end_ts))
        updated = await self._repo.update(row.id, data)
        logger.info("IntervalService: updated interval %s (%s)", interval_id, ", ".join(sorted(data)))
        return updated

    async def delete(self, interval_id: int, user_id: int) -> None:
        row = await self.get(interval_id, user_id)
        await self._repo.delete(row.id)
        logger.info("IntervalService: deleted interval %s for user %s", interval_id, user_id)

    # ── Exceptions ────────────────────────────────────────────────────────────

    def _validate_override(self, modified: Mapping[str, Any]) -> Dict[str, Any]:
        unknown = set(modified) - _OVERRIDE_KEYS
        if unknown:
            raise ValidationError(
                f"modified_interval has unknown keys: {', '.join(sorted(unknown))}",
                details={"field": "modified_interval"},
            )
        out: Dict[str, Any] = {}
        start = parse_instant(modified.get("start_ts"), "start_ts")
        end = parse_instant(modified.get("end_ts"), "end_ts")
        if start is not None:
            out["start_ts"] = start.isoformat()
        if end is not None:
            out["end_ts"] = end.isoformat()
        if start is not None and end is not None:
            self.validate_span(start, end)
        if modified.get("category") is not None:
            out["category"] = _category(modified["category"])
        if not out:
            raise ValidationError(
                "modified_interval must change at least one of start_ts, end_ts, category; "
                "omit it to cancel the occurrence",
                details={"field": "modified_interval"},
            )
        return out

    async def add_exception(
        self,
        interval_id: int,
        user_id: int,
        exception_date: _dt.date,
        modified: Optional[Mapping[str, Any]] = None,
    ) -> RecurrenceException:
        row = await self.get(interval_id, user_id)
        if row.recurrence_rule is None:
            raise ValidationError(
                f"Interval {interval_id} is not recurring; exceptions apply to recurring intervals only",
                details={"interval_id": interval_id},
            )
        if await self._exc_repo.get_for_date(interval_id, exception_date) is not None:
            raise ConflictError(
                f"Interval {interval_id} already has an exception on {exception_date.isoformat()}",
                details={"interval_id": interval_id, "exception_date": exception_date.isoformat()},
            )
        payload = self._validate_override(modified) if modified is not None else None
        exc = await self._exc_repo.create({
            "recurrence_id": interval_id,
            "exception_date": exception_date,
            "modified_interval": payload,
        })
        logger.info(
            "IntervalService: %s occurrence of interval %s on %s",
            "cancelled" if payload is None else "modified", interval_id, exception_date.isoformat(),
        )
        return exc

    async def list_exceptions(self, interval_id: int, user_id: int) -> List[RecurrenceException]:
        await self.get(interval_id, user_id)
        return await self._exc_repo.list_for_recurrence(interval_id)

    async def delete_exception(self, interval_id: int, user_id: int, exception_id: int) -> None:
        await self.get(interval_id, user_id)
        exc = await self._exc_repo.get_by_id(exception_id)
        if exc is None or exc.recurrence_id != interval_id:
            raise NotFoundError(f"Exception {exception_id} not found", details={"exception_id": exception_id})
        await self._exc_repo.delete(exception_id)
