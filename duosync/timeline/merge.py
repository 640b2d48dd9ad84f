from __future__ import annotations

from typing import Iterable, List, Union

from duosync.timeline.types import Category, Interval, MergedInterval, max_category


def merge_intervals(intervals: Iterable[Union[Interval, MergedInterval]]) -> List[MergedInterval]:
    """
    Merge concrete intervals into a minimal, sorted, non-overlapping list.

    An interval whose start is <= the end of the running entry joins it: the
    end is extended to the max of both ends and the category becomes the
    higher-priority one (sleep > busy > other). Touching intervals
    (``a.end == b.start``) therefore merge into one entry.

    Already-merged input comes back unchanged.

    Example:
        09:00-11:00 other + 10:00-12:00 sleep  ->  09:00-12:00 sleep
    """
    ordered = sorted(intervals, key=lambda i: i.start)
    if not ordered:
        return []

    merged: List[MergedInterval] = []
    cur_start = ordered[0].start
    cur_end = ordered[0].end
    cur_cat: Category = ordered[0].category

    for interval in ordered[1:]:
        if interval.start <= cur_end:
            cur_end = max(cur_end, interval.end)
            cur_cat = max_category(cur_cat, interval.category)
        else:
            merged.append(MergedInterval(cur_start, cur_end, cur_cat))
            cur_start, cur_end, cur_cat = interval.start, interval.end, interval.category

    merged.append(MergedInterval(cur_start, cur_end, cur_cat))
    return merged

