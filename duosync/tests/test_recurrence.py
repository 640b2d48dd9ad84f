"""Tests for recurrence rule parsing and expansion (daily, weekly, monthly, exceptions)."""
from __future__ import annotations

import datetime as _dt
import unittest

from duosync.core.exceptions import RecurrenceRuleError, ValidationError
from duosync.timeline import (
    Category,
    Interval,
    MergedInterval,
    RecurrenceOverride,
    check_rule_consistency,
    compute_day,
    day_window,
    parse_recurrence_rule,
    resolve,
    rule_to_dict,
)
from duosync.timeline.types import LAST_DAY, DailyRule, DayOfMonth, MonthlyRule, NthWeekday, WeeklyRule

UTC = _dt.timezone.utc


def _ts(y, mo, d, h=0, mi=0):
    return _dt.datetime(y, mo, d, h, mi, tzinfo=UTC)


def _template(rule, start, end, category=Category.BUSY, id=1):
    return Interval(id=id, user_id=1, start=start, end=end, category=category, recurrence=rule)


def _starts(template, day):
    return [i.start for i in resolve([template], day_window(day))]


class TestParseRecurrenceRule(unittest.TestCase):
    def test_weekly(self):
        rule = parse_recurrence_rule({"type": "weekly", "daysOfWeek": [1, 3], "until": None})
        self.assertEqual(rule, WeeklyRule(days_of_week=frozenset({1, 3})))

    def test_daily_without_days(self):
        self.assertEqual(parse_recurrence_rule({"type": "daily"}), DailyRule())

    def test_monthly_last_day(self):
        rule = parse_recurrence_rule({"type": "monthly", "dayOfMonth": "last"})
        self.assertEqual(rule, MonthlyRule(anchor=DayOfMonth(LAST_DAY)))
        rule = parse_recurrence_rule({"type": "monthly", "dayOfMonth": -1})
        self.assertEqual(rule.anchor, DayOfMonth(LAST_DAY))

    def test_monthly_nth_weekday(self):
        rule = parse_recurrence_rule({"type": "monthly", "byWeekday": "first-monday"})
        self.assertEqual(rule.anchor, NthWeekday(ordinal=1, weekday=1))
        rule = parse_recurrence_rule({"type": "monthly", "byWeekday": "last-friday"})
        self.assertEqual(rule.anchor, NthWeekday(ordinal=-1, weekday=5))

    def test_until_date_covers_whole_day(self):
        rule = parse_recurrence_rule({"type": "daily", "until": "2024-01-15"})
        self.assertEqual(rule.until.date(), _dt.date(2024, 1, 15))
        self.assertEqual((rule.until.hour, rule.until.minute), (23, 59))

    def test_until_timestamp_with_z(self):
        rule = parse_recurrence_rule({"type": "daily", "until": "2024-01-15T10:00:00Z"})
        self.assertEqual(rule.until, _ts(2024, 1, 15, 10))

    def test_monthly_needs_exactly_one_anchor(self):
        with self.assertRaises(RecurrenceRuleError):
            parse_recurrence_rule({"type": "monthly"})
        with self.assertRaises(RecurrenceRuleError):
            parse_recurrence_rule({"type": "monthly", "dayOfMonth": 3, "byWeekday": "first-monday"})

    def test_rejects_malformed(self):
        bad = [
            {"type": "yearly"},
            {"type": "daily", "dayOfMonth": 3},
            {"type": "weekly", "daysOfWeek": [8]},
            {"type": "weekly", "daysOfWeek": "monday"},
            {"type": "monthly", "dayOfMonth": 32},
            {"type": "monthly", "byWeekday": "fifth-monday"},
            {"type": "daily", "until": "next week"},
            "daily",
        ]
        for raw in bad:
            with self.subTest(raw=raw):
                with self.assertRaises(RecurrenceRuleError) as ctx:
                    parse_recurrence_rule(raw)
                self.assertEqual(ctx.exception.code, "RECURRENCE_INVALID")
                self.assertIsInstance(ctx.exception, ValidationError)

    def test_contradictory_nth_weekday_rejected(self):
        rule = parse_recurrence_rule({"type": "monthly", "byWeekday": "first-monday", "daysOfWeek": [2]})
        with self.assertRaises(RecurrenceRuleError):
            check_rule_consistency(rule)
        check_rule_consistency(parse_recurrence_rule({"type": "monthly", "dayOfMonth": 15, "daysOfWeek": [1]}))

    def test_rule_to_dict_is_reparseable(self):
        raw = {"type": "monthly", "daysOfWeek": [5], "until": "2024-06-30", "byWeekday": "last-friday"}
        rule = parse_recurrence_rule(raw)
        out = rule_to_dict(rule)
        self.assertEqual(out["byWeekday"], "last-friday")
        self.assertEqual(out["daysOfWeek"], [5])
        self.assertEqual(parse_recurrence_rule(out), rule)


class TestResolveWeeklyDaily(unittest.TestCase):
    def test_weekly_monday_wednesday(self):
        tpl = _template(WeeklyRule(frozenset({1, 3})), _ts(2024, 1, 1, 14), _ts(2024, 1, 1, 15))
        occurrences = resolve([tpl], day_window(_dt.date(2024, 1, 15)))
        self.assertEqual(len(occurrences), 1)
        self.assertEqual((occurrences[0].start, occurrences[0].end), (_ts(2024, 1, 15, 14), _ts(2024, 1, 15, 15)))
        self.assertIsNone(occurrences[0].recurrence)
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 16)), [])
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 17)), [_ts(2024, 1, 17, 14)])

    def test_weekly_without_days_uses_template_weekday(self):
        # 2024-01-02 is a Tuesday
        tpl = _template(WeeklyRule(), _ts(2024, 1, 2, 8), _ts(2024, 1, 2, 9))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 16)), [_ts(2024, 1, 16, 8)])
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [])

    def test_daily_with_weekday_filter(self):
        tpl = _template(DailyRule(frozenset({1, 2, 3, 4, 5})), _ts(2024, 1, 1, 9), _ts(2024, 1, 1, 17))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 19)), [_ts(2024, 1, 19, 9)])  # Friday
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 20)), [])  # Saturday

    def test_template_after_window_produces_nothing(self):
        tpl = _template(DailyRule(), _ts(2024, 2, 1, 9), _ts(2024, 2, 1, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [])

    def test_first_day_of_template(self):
        tpl = _template(DailyRule(), _ts(2024, 1, 15, 9), _ts(2024, 1, 15, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [_ts(2024, 1, 15, 9)])

    def test_until_is_inclusive(self):
        rule = parse_recurrence_rule({"type": "daily", "until": "2024-01-15"})
        tpl = _template(rule, _ts(2024, 1, 1, 9), _ts(2024, 1, 1, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [_ts(2024, 1, 15, 9)])
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 16)), [])

    def test_old_template_still_yields_one_occurrence_per_day(self):
        tpl = _template(DailyRule(), _ts(2000, 1, 1, 9), _ts(2000, 1, 1, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [_ts(2024, 1, 15, 9)])

    def test_occurrences_stay_within_window(self):
        rules = [DailyRule(), WeeklyRule(frozenset(range(1, 8))), MonthlyRule(anchor=DayOfMonth(15))]
        window = day_window(_dt.date(2024, 1, 15))
        for rule in rules:
            with self.subTest(rule=rule):
                tpl = _template(rule, _ts(2023, 12, 15, 23), _ts(2023, 12, 15, 23, 30))
                occurrences = resolve([tpl], window)
                self.assertLessEqual(len(occurrences), 1)
                for occ in occurrences:
                    self.assertLessEqual(window.start, occ.start)
                    self.assertLessEqual(occ.start, window.end)

    def test_overnight_occurrence_from_previous_day_spills_in(self):
        sleep = _template(DailyRule(), _ts(2024, 1, 1, 22), _ts(2024, 1, 2, 6), Category.SLEEP)
        window = day_window(_dt.date(2024, 1, 15))
        self.assertEqual(
            [o.start for o in resolve([sleep], window)],
            [_ts(2024, 1, 14, 22), _ts(2024, 1, 15, 22)],
        )
        day = compute_day([sleep], window)
        self.assertEqual(
            day.merged,
            [
                MergedInterval(window.start, _ts(2024, 1, 15, 6), Category.SLEEP),
                MergedInterval(_ts(2024, 1, 15, 22), window.end, Category.SLEEP),
            ],
        )

    def test_non_recurring_passes_through(self):
        concrete = Interval(id=9, user_id=1, start=_ts(2024, 1, 15, 9), end=_ts(2024, 1, 15, 10), category=Category.OTHER)
        self.assertEqual(resolve([concrete], day_window(_dt.date(2024, 1, 15))), [concrete])


class TestResolveMonthly(unittest.TestCase):
    def test_last_day_of_month(self):
        tpl = _template(MonthlyRule(anchor=DayOfMonth(LAST_DAY)), _ts(2024, 1, 31, 10), _ts(2024, 1, 31, 11))
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 29)), [_ts(2024, 2, 29, 10)])
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 28)), [])

    def test_day_31_skips_short_months(self):
        tpl = _template(MonthlyRule(anchor=DayOfMonth(31)), _ts(2024, 1, 31, 10), _ts(2024, 1, 31, 11))
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 29)), [])
        self.assertEqual(_starts(tpl, _dt.date(2024, 3, 31)), [_ts(2024, 3, 31, 10)])

    def test_first_monday(self):
        rule = parse_recurrence_rule({"type": "monthly", "byWeekday": "first-monday"})
        tpl = _template(rule, _ts(2024, 1, 1, 9), _ts(2024, 1, 1, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 5)), [_ts(2024, 2, 5, 9)])
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 12)), [])

    def test_last_friday(self):
        rule = parse_recurrence_rule({"type": "monthly", "byWeekday": "last-friday"})
        tpl = _template(rule, _ts(2024, 1, 26, 16), _ts(2024, 1, 26, 17))
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 23)), [_ts(2024, 2, 23, 16)])
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 16)), [])

    def test_day_of_month_with_weekday_filter(self):
        rule = MonthlyRule(anchor=DayOfMonth(15), days_of_week=frozenset({1}))
        tpl = _template(rule, _ts(2024, 1, 15, 9), _ts(2024, 1, 15, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 1, 15)), [_ts(2024, 1, 15, 9)])  # Monday
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 15)), [])  # Thursday

    def test_contradictory_rule_produces_nothing(self):
        rule = MonthlyRule(anchor=NthWeekday(1, 1), days_of_week=frozenset({2}))
        tpl = _template(rule, _ts(2024, 1, 1, 9), _ts(2024, 1, 1, 10))
        self.assertEqual(_starts(tpl, _dt.date(2024, 2, 5)), [])


class TestOverrides(unittest.TestCase):
    def setUp(self):
        self.tpl = _template(WeeklyRule(frozenset({1})), _ts(2024, 1, 1, 14), _ts(2024, 1, 1, 15), id=42)
        self.window = day_window(_dt.date(2024, 1, 15))

    def test_cancellation_removes_occurrence(self):
        override = RecurrenceOverride(42, _dt.date(2024, 1, 15))
        self.assertEqual(resolve([self.tpl], self.window, [override]), [])

    def test_override_for_other_date_is_ignored(self):
        override = RecurrenceOverride(42, _dt.date(2024, 1, 8))
        self.assertEqual(len(resolve([self.tpl], self.window, [override])), 1)

    def test_modified_occurrence(self):
        override = RecurrenceOverride(
            42,
            _dt.date(2024, 1, 15),
            {"start_ts": "2024-01-15T16:00:00Z", "end_ts": "2024-01-15T18:00:00Z", "category": "sleep"},
        )
        (occ,) = resolve([self.tpl], self.window, [override])
        self.assertEqual((occ.start, occ.end, occ.category), (_ts(2024, 1, 15, 16), _ts(2024, 1, 15, 18), Category.SLEEP))

    def test_malformed_override_keeps_templated_occurrence(self):
        override = RecurrenceOverride(42, _dt.date(2024, 1, 15), {"category": "nap"})
        with self.assertLogs("duosync.timeline.recurrence", level="WARNING"):
            (occ,) = resolve([self.tpl], self.window, [override])
        self.assertEqual((occ.start, occ.category), (_ts(2024, 1, 15, 14), Category.BUSY))

    def test_override_keyed_by_start_date_of_overnight_occurrence(self):
        sleep = _template(DailyRule(), _ts(2024, 1, 1, 22), _ts(2024, 1, 2, 6), Category.SLEEP, id=7)
        cancel = RecurrenceOverride(7, _dt.date(2024, 1, 14))
        self.assertEqual([o.start for o in resolve([sleep], self.window, [cancel])], [_ts(2024, 1, 15, 22)])


if __name__ == "__main__":
    unittest.main()
