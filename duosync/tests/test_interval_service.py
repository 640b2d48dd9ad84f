"""Unit tests for IntervalService validation and exception handling with mocked repositories."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from duosync.config import TimelineConfig
from duosync.core.exceptions import ConflictError, NotFoundError, RecurrenceRuleError, ValidationError
from duosync.services.interval_service import IntervalService, normalize_rule

UTC = _dt.timezone.utc


def _run(coro):
    return asyncio.run(coro)


def _at(hour, day=15):
    return _dt.datetime(2024, 1, day, hour, tzinfo=UTC)


def _fake_interval(**kwargs):
    defaults = {
        "id": 10,
        "user_id": 1,
        "start_ts": _at(9),
        "end_ts": _at(10),
        "category": "busy",
        "description": None,
        "recurrence_rule": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _service(max_hours=168):
    svc = IntervalService(MagicMock(), TimelineConfig(max_interval_span_hours=max_hours))
    svc._repo = MagicMock()
    svc._exc_repo = MagicMock()
    svc._user_repo = MagicMock()
    svc._user_repo.get_by_id = AsyncMock(return_value=SimpleNamespace(id=1))
    svc._repo.create = AsyncMock(side_effect=lambda data: _fake_interval(**data))
    svc._repo.update = AsyncMock(side_effect=lambda id, data: _fake_interval(id=id, **data))
    svc._repo.delete = AsyncMock(return_value=True)
    svc._repo.get_for_user = AsyncMock(return_value=_fake_interval())
    return svc


class TestCreateInterval(unittest.TestCase):
    def test_creates_concrete_interval(self):
        svc = _service()
        row = _run(svc.create(1, {"start_ts": _at(9), "end_ts": _at(10), "category": "sleep"}))
        self.assertEqual(row.category, "sleep")
        data = svc._repo.create.call_args.args[0]
        self.assertEqual(data["user_id"], 1)
        self.assertIsNone(data["recurrence_rule"])

    def test_naive_datetimes_stored_as_utc(self):
        svc = _service()
        _run(svc.create(1, {"start_ts": _dt.datetime(2024, 1, 15, 9), "end_ts": _dt.datetime(2024, 1, 15, 10), "category": "busy"}))
        self.assertEqual(svc._repo.create.call_args.args[0]["start_ts"], _at(9))

    def test_rule_is_stored_in_canonical_form(self):
        svc = _service()
        _run(svc.create(1, {
            "start_ts": _at(9), "end_ts": _at(10), "category": "busy",
            "recurrence_rule": {"type": "monthly", "dayOfMonth": -1, "byWeekday": None, "daysOfWeek": [], "until": None},
        }))
        stored = svc._repo.create.call_args.args[0]["recurrence_rule"]
        self.assertEqual(stored, {"type": "monthly", "daysOfWeek": [], "until": None, "dayOfMonth": "last"})

    def test_end_must_follow_start(self):
        svc = _service()
        with self.assertRaises(ValidationError) as ctx:
            _run(svc.create(1, {"start_ts": _at(10), "end_ts": _at(10), "category": "busy"}))
        self.assertEqual(ctx.exception.details["field"], "end_ts")
        svc._repo.create.assert_not_awaited()

    def test_span_limit(self):
        svc = _service(max_hours=24)
        with self.assertRaises(ValidationError):
            _run(svc.create(1, {"start_ts": _at(9), "end_ts": _at(10, day=16), "category": "busy"}))

    def test_unknown_category(self):
        svc = _service()
        with self.assertRaises(ValidationError) as ctx:
            _run(svc.create(1, {"start_ts": _at(9), "end_ts": _at(10), "category": "nap"}))
        self.assertEqual(ctx.exception.details["field"], "category")

    def test_ambiguous_monthly_rule_rejected(self):
        svc = _service()
        with self.assertRaises(RecurrenceRuleError):
            _run(svc.create(1, {
                "start_ts": _at(9), "end_ts": _at(10), "category": "busy",
                "recurrence_rule": {"type": "monthly", "dayOfMonth": 3, "byWeekday": "first-monday"},
            }))

    def test_unknown_user(self):
        svc = _service()
        svc._user_repo.get_by_id = AsyncMock(return_value=None)
        with self.assertRaises(NotFoundError):
            _run(svc.create(99, {"start_ts": _at(9), "end_ts": _at(10), "category": "busy"}))


class TestUpdateDelete(unittest.TestCase):
    def test_partial_update_checks_against_stored_bounds(self):
        svc = _service()
        with self.assertRaises(ValidationError):
            _run(svc.update(10, 1, {"start_ts": _at(11)}))
        svc._repo.update.assert_not_awaited()

    def test_update_category(self):
        svc = _service()
        row = _run(svc.update(10, 1, {"category": "other"}))
        self.assertEqual(row.category, "other")
        svc._repo.update.assert_awaited_once_with(10, {"category": "other"})

    def test_clearing_rule(self):
        svc = _service()
        svc._repo.get_for_user = AsyncMock(return_value=_fake_interval(recurrence_rule={"type": "daily"}))
        _run(svc.update(10, 1, {"recurrence_rule": None}))
        svc._repo.update.assert_awaited_once_with(10, {"recurrence_rule": None})

    def test_empty_update_is_noop(self):
        svc = _service()
        row = _run(svc.update(10, 1, {}))
        self.assertEqual(row.id, 10)
        svc._repo.update.assert_not_awaited()

    def test_other_users_interval_is_not_found(self):
        svc = _service()
        svc._repo.get_for_user = AsyncMock(return_value=None)
        with self.assertRaises(NotFoundError):
            _run(svc.delete(10, 2))
        svc._repo.delete.assert_not_awaited()


class TestExceptions(unittest.TestCase):
    def setUp(self):
        self.svc = _service()
        self.svc._repo.get_for_user = AsyncMock(
            return_value=_fake_interval(recurrence_rule={"type": "weekly", "daysOfWeek": [1]})
        )
        self.svc._exc_repo.get_for_date = AsyncMock(return_value=None)
        self.svc._exc_repo.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=1, **data))

    def test_cancellation(self):
        exc = _run(self.svc.add_exception(10, 1, _dt.date(2024, 1, 15)))
        self.assertIsNone(exc.modified_interval)
        self.assertEqual(exc.recurrence_id, 10)

    def test_modification_is_normalized(self):
        exc = _run(self.svc.add_exception(
            10, 1, _dt.date(2024, 1, 15), {"start_ts": _at(16), "end_ts": _at(18), "category": "sleep"},
        ))
        self.assertEqual(
            exc.modified_interval,
            {"start_ts": _at(16).isoformat(), "end_ts": _at(18).isoformat(), "category": "sleep"},
        )

    def test_only_recurring_intervals(self):
        self.svc._repo.get_for_user = AsyncMock(return_value=_fake_interval())
        with self.assertRaises(ValidationError):
            _run(self.svc.add_exception(10, 1, _dt.date(2024, 1, 15)))

    def test_duplicate_date_conflicts(self):
        self.svc._exc_repo.get_for_date = AsyncMock(return_value=SimpleNamespace(id=3))
        with self.assertRaises(ConflictError) as ctx:
            _run(self.svc.add_exception(10, 1, _dt.date(2024, 1, 15)))
        self.assertEqual(ctx.exception.http_status, 409)

    def test_bad_modification(self):
        for modified in ({"start_ts": _at(18), "end_ts": _at(16)}, {"category": "nap"}, {"colour": "red"}, {}):
            with self.subTest(modified=modified):
                with self.assertRaises(ValidationError):
                    _run(self.svc.add_exception(10, 1, _dt.date(2024, 1, 15), modified))
        self.svc._exc_repo.create.assert_not_awaited()

    def test_delete_exception_of_other_interval_is_not_found(self):
        self.svc._exc_repo.get_by_id = AsyncMock(return_value=SimpleNamespace(id=3, recurrence_id=11))
        self.svc._exc_repo.delete = AsyncMock()
        with self.assertRaises(NotFoundError):
            _run(self.svc.delete_exception(10, 1, 3))
        self.svc._exc_repo.delete.assert_not_awaited()


class TestNormalizeRule(unittest.TestCase):
    def test_none(self):
        self.assertIsNone(normalize_rule(None))

    def test_contradictory(self):
        with self.assertRaises(RecurrenceRuleError):
            normalize_rule({"type": "monthly", "byWeekday": "first-monday", "daysOfWeek": [3]})


if __name__ == "__main__":
    unittest.main()
