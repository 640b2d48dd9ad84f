from __future__ import annotations

import datetime as _dt
from typing import Iterable, List

from duosync.timeline.types import FreeSlot, MergedInterval


def free_slots(
    merged: Iterable[MergedInterval],
    day_start: _dt.datetime,
    day_end: _dt.datetime,
) -> List[FreeSlot]:
    """
    Gaps around ``merged`` (ascending, non-overlapping) inside [day_start, day_end].

    Slots of zero or negative width are never emitted, so busy entries and
    free slots together tile the window exactly.

    Example:
        busy 09:00-10:00 on 00:00..23:59  ->  00:00-09:00, 10:00-23:59
    """
    slots: List[FreeSlot] = []
    cursor = day_start

    for interval in merged:
        if cursor < interval.start:
            slots.append(FreeSlot(cursor, interval.start))
        cursor = max(cursor, interval.end)

    if cursor < day_end:
        slots.append(FreeSlot(cursor, day_end))

    return slots
