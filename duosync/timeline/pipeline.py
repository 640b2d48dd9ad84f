"""Pure composition of the timeline stages for one set of intervals and one day.

    stored intervals -> normalize -> resolve recurrences -> normalize -> merge -> complement
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from duosync.timeline.complement import free_slots
from duosync.timeline.merge import merge_intervals
from duosync.timeline.recurrence import resolve
from duosync.timeline.types import DayWindow, FreeSlot, Interval, MergedInterval, RecurrenceOverride
from duosync.timeline.window import normalize


@dataclass(frozen=True)
class DayAvailability:
    concrete: List[Interval]
    """Resolved occurrences and one-off intervals, clamped to the window, unmerged."""

    merged: List[MergedInterval]
    free: List[FreeSlot]


def compute_day(
    intervals: Iterable[Interval],
    window: DayWindow,
    overrides: Iterable[RecurrenceOverride] = (),
) -> DayAvailability:
    concrete = normalize(resolve(normalize(intervals, window), window, overrides), window)
    merged = merge_intervals(concrete)
    return DayAvailability(concrete=concrete, merged=merged, free=free_slots(merged, window.start, window.end))
