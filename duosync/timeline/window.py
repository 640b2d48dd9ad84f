"""Day window construction and the interval normalizer (clamp to the window)."""
from __future__ import annotations

import dataclasses
import datetime as _dt
import re
from typing import Iterable, List, Optional

from duosync.timeline.types import DayWindow, Interval

_DAY_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_LAST_INSTANT = _dt.timedelta(days=1) - _dt.timedelta(microseconds=1)


def day_window(date: _dt.date) -> DayWindow:
    """UTC bounds of ``date``: 00:00:00 through 23:59:59.999999, both inclusive."""
    start = _dt.datetime(date.year, date.month, date.day, tzinfo=_dt.timezone.utc)
    return DayWindow(start=start, end=start + _LAST_INSTANT)


def parse_day(value: str) -> _dt.date:
    """Parse a strict ``YYYY-MM-DD`` string. Raises ValueError otherwise."""
    if not isinstance(value, str) or _DAY_PATTERN.fullmatch(value) is None:
        raise ValueError(f"expected YYYY-MM-DD, got {value!r}")
    return _dt.datetime.strptime(value, "%Y-%m-%d").date()


def ensure_utc(value: _dt.datetime) -> _dt.datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


def clamp(interval: Interval, window: DayWindow) -> Optional[Interval]:
    """Clamp a concrete interval to ``window``; None when nothing positive remains."""
    start = max(interval.start, window.start)
    end = min(interval.end, window.end)
    if end <= start:
        return None
    if start == interval.start and end == interval.end:
        return interval
    return dataclasses.replace(interval, start=start, end=end)


def normalize(intervals: Iterable[Interval], window: DayWindow) -> List[Interval]:
    """
    Clamp every concrete interval to the window and drop degenerate results.

    Recurring templates pass through untouched: their span is the occurrence
    template, which the resolver needs intact. Occurrences it produces are fed
    back through this function.
    """
    out: List[Interval] = []
    for interval in intervals:
        if interval.is_recurring:
            out.append(interval)
            continue
        clamped = clamp(interval, window)
        if clamped is not None:
            out.append(clamped)
    return out
