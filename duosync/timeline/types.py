"""Value types shared by every stage of the timeline pipeline.

All instants are timezone-aware UTC datetimes. Nothing here performs I/O.
"""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional, Union


class Category(str, Enum):
    """Interval category with an explicit total order: sleep > busy > other."""

    SLEEP = "sleep"
    BUSY = "busy"
    OTHER = "other"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]


_PRIORITY = {Category.SLEEP: 3, Category.BUSY: 2, Category.OTHER: 1}


def max_category(a: Category, b: Category) -> Category:
    """Higher-priority of two categories. Ties keep ``a``."""
    return b if b.priority > a.priority else a


class SegmentCategory(str, Enum):
    """Categories a rendered timeline segment can carry."""

    MATCH = "match"
    SLEEP = "sleep"
    BUSY = "busy"
    OTHER = "other"
    AVAILABLE = "available"


# ── Recurrence rules ──────────────────────────────────────────────────────────

LAST_DAY = -1
"""DayOfMonth sentinel for the last day of the month."""


@dataclass(frozen=True)
class DayOfMonth:
    day: int  # 1..31 or LAST_DAY


@dataclass(frozen=True)
class NthWeekday:
    ordinal: int  # 1..4, or -1 for "last"
    weekday: int  # 1=Monday .. 7=Sunday


MonthlyAnchor = Union[DayOfMonth, NthWeekday]


@dataclass(frozen=True)
class DailyRule:
    days_of_week: FrozenSet[int] = frozenset()
    until: Optional[_dt.datetime] = None


@dataclass(frozen=True)
class WeeklyRule:
    days_of_week: FrozenSet[int] = frozenset()
    until: Optional[_dt.datetime] = None


@dataclass(frozen=True)
class MonthlyRule:
    anchor: MonthlyAnchor
    days_of_week: FrozenSet[int] = frozenset()
    until: Optional[_dt.datetime] = None


RecurrenceRule = Union[DailyRule, WeeklyRule, MonthlyRule]


# ── Intervals ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Interval:
    """A busy span. With ``recurrence`` set, start/end describe the first occurrence."""

    id: int
    user_id: int
    start: _dt.datetime
    end: _dt.datetime
    category: Category
    description: Optional[str] = None
    recurrence: Optional[RecurrenceRule] = None

    @property
    def duration(self) -> _dt.timedelta:
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None


@dataclass(frozen=True)
class RecurrenceOverride:
    """Per-occurrence exception: ``modified=None`` cancels, otherwise it replaces fields."""

    recurrence_id: int
    exception_date: _dt.date
    modified: Optional[Mapping[str, Any]] = None

    @property
    def is_cancellation(self) -> bool:
        return self.modified is None


@dataclass(frozen=True)
class MergedInterval:
    start: _dt.datetime
    end: _dt.datetime
    category: Category


@dataclass(frozen=True)
class FreeSlot:
    start: _dt.datetime
    end: _dt.datetime


@dataclass(frozen=True)
class DayWindow:
    """Inclusive UTC bounds of one calendar day."""

    start: _dt.datetime
    end: _dt.datetime

    @property
    def date(self) -> _dt.date:
        return self.start.date()


@dataclass(frozen=True)
class TimelineSegment:
    """Caller-facing unit: local ``HH:mm`` bounds plus a category."""

    start: str
    end: str
    category: SegmentCategory

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end, "category": self.category.value}


@dataclass
class Timeline:
    """Result of one timeline request."""

    date: _dt.date
    timezone: str
    segments: list[TimelineSegment] = field(default_factory=list)
    invalid_rule_ids: list[int] = field(default_factory=list)
