"""Tests for the priority merger and the complement calculator."""
from __future__ import annotations

import datetime as _dt
import itertools
import random
import unittest

from duosync.timeline import Category, FreeSlot, Interval, MergedInterval, day_window, free_slots, merge_intervals

UTC = _dt.timezone.utc
DAY = _dt.date(2024, 1, 15)
WINDOW = day_window(DAY)
_ids = itertools.count(1)


def _at(hour: int, minute: int = 0) -> _dt.datetime:
    return _dt.datetime(2024, 1, 15, hour, minute, tzinfo=UTC)


def _iv(start, end, category=Category.BUSY, user_id=1):
    return Interval(id=next(_ids), user_id=user_id, start=start, end=end, category=category)


class TestMergeIntervals(unittest.TestCase):
    def test_single_interval_passes_through(self):
        merged = merge_intervals([_iv(_at(9), _at(10), Category.BUSY)])
        self.assertEqual(merged, [MergedInterval(_at(9), _at(10), Category.BUSY)])

    def test_overlap_takes_higher_priority_and_extends(self):
        merged = merge_intervals([
            _iv(_at(9), _at(11), Category.OTHER),
            _iv(_at(10), _at(12), Category.SLEEP),
        ])
        self.assertEqual(merged, [MergedInterval(_at(9), _at(12), Category.SLEEP)])

    def test_touching_intervals_merge(self):
        merged = merge_intervals([
            _iv(_at(10), _at(11), Category.OTHER),
            _iv(_at(9), _at(10), Category.BUSY),
        ])
        self.assertEqual(merged, [MergedInterval(_at(9), _at(11), Category.BUSY)])

    def test_disjoint_intervals_stay_separate_and_sorted(self):
        merged = merge_intervals([
            _iv(_at(14), _at(15), Category.OTHER),
            _iv(_at(9), _at(10), Category.BUSY),
        ])
        self.assertEqual(
            merged,
            [
                MergedInterval(_at(9), _at(10), Category.BUSY),
                MergedInterval(_at(14), _at(15), Category.OTHER),
            ],
        )

    def test_contained_interval_does_not_shrink_entry(self):
        merged = merge_intervals([
            _iv(_at(8), _at(18), Category.OTHER),
            _iv(_at(9), _at(10), Category.BUSY),
        ])
        self.assertEqual(merged, [MergedInterval(_at(8), _at(18), Category.BUSY)])

    def test_empty_input(self):
        self.assertEqual(merge_intervals([]), [])

    def test_idempotent(self):
        once = merge_intervals([
            _iv(_at(1), _at(3), Category.OTHER),
            _iv(_at(2), _at(4), Category.BUSY),
            _iv(_at(6), _at(7), Category.SLEEP),
            _iv(_at(7), _at(8), Category.OTHER),
            _iv(_at(20), _at(21), Category.OTHER),
        ])
        self.assertEqual(merge_intervals(once), once)

    def test_every_covered_instant_is_covered_once(self):
        rng = random.Random(7)
        categories = list(Category)
        for _ in range(50):
            intervals = []
            for _ in range(rng.randint(1, 8)):
                start = rng.randint(0, 22 * 60)
                end = start + rng.randint(1, 180)
                intervals.append(_iv(
                    _at(0) + _dt.timedelta(minutes=start),
                    _at(0) + _dt.timedelta(minutes=min(end, 24 * 60 - 1)),
                    rng.choice(categories),
                ))
            merged = merge_intervals(intervals)
            for a, b in zip(merged, merged[1:]):
                self.assertLess(a.end, b.start)
            for minute in range(0, 24 * 60, 5):
                instant = _at(0) + _dt.timedelta(minutes=minute)
                covering = [i for i in intervals if i.start <= instant < i.end]
                entries = [m for m in merged if m.start <= instant < m.end]
                if not covering:
                    self.assertEqual(entries, [])
                    continue
                self.assertEqual(len(entries), 1)
                # Merged category dominates every input covering the instant
                top = max(c.category.priority for c in covering)
                self.assertGreaterEqual(entries[0].category.priority, top)


class TestFreeSlots(unittest.TestCase):
    def test_single_busy_interval(self):
        merged = [MergedInterval(_at(9), _at(10), Category.BUSY)]
        slots = free_slots(merged, WINDOW.start, WINDOW.end)
        self.assertEqual(slots, [FreeSlot(_at(0), _at(9)), FreeSlot(_at(10), WINDOW.end)])

    def test_empty_day_is_one_slot(self):
        self.assertEqual(free_slots([], WINDOW.start, WINDOW.end), [FreeSlot(WINDOW.start, WINDOW.end)])

    def test_fully_busy_day_has_no_slots(self):
        merged = [MergedInterval(WINDOW.start, WINDOW.end, Category.SLEEP)]
        self.assertEqual(free_slots(merged, WINDOW.start, WINDOW.end), [])

    def test_busy_at_day_edges(self):
        merged = [
            MergedInterval(_at(0), _at(7), Category.SLEEP),
            MergedInterval(_at(23), WINDOW.end, Category.SLEEP),
        ]
        self.assertEqual(free_slots(merged, WINDOW.start, WINDOW.end), [FreeSlot(_at(7), _at(23))])

    def test_merged_and_free_tile_the_window(self):
        merged = merge_intervals([
            _iv(_at(1), _at(2), Category.OTHER),
            _iv(_at(5), _at(9), Category.BUSY),
            _iv(_at(8), _at(11), Category.SLEEP),
            _iv(_at(22), WINDOW.end, Category.SLEEP),
        ])
        slots = free_slots(merged, WINDOW.start, WINDOW.end)
        pieces = sorted([(m.start, m.end) for m in merged] + [(s.start, s.end) for s in slots])
        self.assertEqual(pieces[0][0], WINDOW.start)
        self.assertEqual(pieces[-1][1], WINDOW.end)
        for (_, end), (start, _) in zip(pieces, pieces[1:]):
            self.assertEqual(end, start)


if __name__ == "__main__":
    unittest.main()
