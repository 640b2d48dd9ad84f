"""Turn merged busy time and free slots into caller-facing, timezone-local segments.

Everything up to rendering stays in UTC; the caller's timezone is applied only
when an instant is formatted as ``HH:mm``.
"""
from __future__ import annotations

import datetime as _dt
from typing import Iterable, List, NamedTuple, Sequence, Tuple

from duosync.timeline.merge import merge_intervals
from duosync.timeline.types import (
    Category,
    DayWindow,
    FreeSlot,
    Interval,
    MergedInterval,
    SegmentCategory,
    TimelineSegment,
)

TIME_FORMAT = "%H:%M"


class Span(NamedTuple):
    start: _dt.datetime
    end: _dt.datetime
    category: SegmentCategory


def format_local(instant: _dt.datetime, tz: _dt.tzinfo) -> str:
    return instant.astimezone(tz).strftime(TIME_FORMAT)


def render(spans: Iterable[Span], tz: _dt.tzinfo) -> List[TimelineSegment]:
    """Sort by UTC start, format in ``tz`` and drop spans that render with no width."""
    out: List[TimelineSegment] = []
    for span in sorted(spans, key=lambda s: s.start):
        if span.end <= span.start:
            continue
        start, end = format_local(span.start, tz), format_local(span.end, tz)
        if start == end:
            continue
        out.append(TimelineSegment(start=start, end=end, category=span.category))
    return out


def timeline_spans(merged: Iterable[MergedInterval], free: Iterable[FreeSlot]) -> List[Span]:
    """Busy entries keep their category; free slots become ``available``."""
    spans = [Span(m.start, m.end, SegmentCategory(m.category.value)) for m in merged]
    spans.extend(Span(f.start, f.end, SegmentCategory.AVAILABLE) for f in free)
    spans.sort(key=lambda s: s.start)
    return spans


def build_timeline_segments(
    merged: Iterable[MergedInterval],
    free: Iterable[FreeSlot],
    tz: _dt.tzinfo,
) -> List[TimelineSegment]:
    return render(timeline_spans(merged, free), tz)


# ── Shared comparison ─────────────────────────────────────────────────────────

class Coverage(NamedTuple):
    """
    One user's day with sleep and awake busy time merged separately:
    ``asleep`` covers exactly the instants some sleep interval covers.
    """

    asleep: List[MergedInterval]
    busy: List[MergedInterval]


def coverage(intervals: Iterable[Interval]) -> Coverage:
    """Build a Coverage from concrete, window-clamped intervals."""
    asleep: List[Interval] = []
    busy: List[Interval] = []
    for interval in intervals:
        (asleep if interval.category is Category.SLEEP else busy).append(interval)
    return Coverage(asleep=merge_intervals(asleep), busy=merge_intervals(busy))


def classify_shared(asleep: bool, current_busy: bool, others_busy: bool) -> SegmentCategory:
    """
    Shared category for one instant, first match wins:
    sleep (anyone asleep) > other (current user busy) > match (everyone free) > available.
    """
    if asleep:
        return SegmentCategory.SLEEP
    if current_busy:
        return SegmentCategory.OTHER
    if not others_busy:
        return SegmentCategory.MATCH
    return SegmentCategory.AVAILABLE


class _Cursor:
    """Walks one merged list in step with an ascending sweep."""

    def __init__(self, merged: Sequence[MergedInterval]) -> None:
        self._merged = merged
        self._i = 0

    def covers(self, instant: _dt.datetime) -> bool:
        while self._i < len(self._merged) and self._merged[self._i].end <= instant:
            self._i += 1
        return self._i < len(self._merged) and self._merged[self._i].start <= instant


class _UserCursor:
    def __init__(self, cov: Coverage) -> None:
        self._asleep = _Cursor(cov.asleep)
        self._busy = _Cursor(cov.busy)

    def state_at(self, instant: _dt.datetime) -> Tuple[bool, bool]:
        asleep = self._asleep.covers(instant)
        busy = self._busy.covers(instant)
        return asleep, busy


def shared_spans(current: Coverage, others: Sequence[Coverage], window: DayWindow) -> List[Span]:
    """
    One sorted sweep over every boundary of every user plus the window bounds.
    Each sub-interval gets exactly one category; neighbours that end up with
    the same category are joined.
    """
    points = {window.start, window.end}
    for cov in [current, *others]:
        for m in cov.asleep + cov.busy:
            points.add(m.start)
            points.add(m.end)
    boundaries = sorted(p for p in points if window.start <= p <= window.end)

    cur = _UserCursor(current)
    oths = [_UserCursor(cov) for cov in others]
    spans: List[Span] = []
    for start, end in zip(boundaries, boundaries[1:]):
        cur_asleep, cur_busy = cur.state_at(start)
        states = [o.state_at(start) for o in oths]
        category = classify_shared(
            asleep=cur_asleep or any(s for s, _ in states),
            current_busy=cur_busy,
            others_busy=any(b for _, b in states),
        )
        if spans and spans[-1].category is category and spans[-1].end == start:
            spans[-1] = spans[-1]._replace(end=end)
        else:
            spans.append(Span(start, end, category))
    return spans


def build_shared_segments(
    current: Coverage,
    others: Sequence[Coverage],
    window: DayWindow,
    tz: _dt.tzinfo,
) -> List[TimelineSegment]:
    return render(shared_spans(current, others, window), tz)
