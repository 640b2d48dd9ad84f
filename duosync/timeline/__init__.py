"""
duosync.timeline – the availability pipeline, pure and synchronous.

Public API
──────────
  day_window, normalize          clamp intervals to one UTC day
  parse_recurrence_rule, resolve expand daily/weekly/monthly rules inside a window
  merge_intervals                priority merge (sleep > busy > other)
  free_slots                     complement of the merged busy set
  compute_day                    all of the above for one set of intervals
  build_timeline_segments        single-user / pooled view
  coverage, build_shared_segments current user against one or more others
"""
from duosync.timeline.complement import free_slots
from duosync.timeline.merge import merge_intervals
from duosync.timeline.pipeline import DayAvailability, compute_day
from duosync.timeline.recurrence import (
    check_rule_consistency,
    occurrence_starts,
    parse_recurrence_rule,
    resolve,
    rule_to_dict,
)
from duosync.timeline.segments import (
    Coverage,
    build_shared_segments,
    build_timeline_segments,
    classify_shared,
    coverage,
)
from duosync.timeline.types import (
    Category,
    DayWindow,
    FreeSlot,
    Interval,
    MergedInterval,
    RecurrenceOverride,
    SegmentCategory,
    Timeline,
    TimelineSegment,
    max_category,
)
from duosync.timeline.window import day_window, normalize

__all__ = [
    "Category",
    "SegmentCategory",
    "DayWindow",
    "Interval",
    "MergedInterval",
    "FreeSlot",
    "RecurrenceOverride",
    "Timeline",
    "TimelineSegment",
    "max_category",
    "day_window",
    "normalize",
    "parse_recurrence_rule",
    "check_rule_consistency",
    "rule_to_dict",
    "occurrence_starts",
    "resolve",
    "merge_intervals",
    "free_slots",
    "DayAvailability",
    "compute_day",
    "build_timeline_segments",
    "Coverage",
    "coverage",
    "build_shared_segments",
    "classify_shared",
]
