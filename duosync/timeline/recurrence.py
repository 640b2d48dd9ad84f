"""Recurrence rules: parsing stored JSON into typed rules and expanding them per day window.

Stored shape (``busy_intervals.recurrence_rule``)::

    {"type": "weekly", "daysOfWeek": [1, 3], "until": "2024-03-01"}
    {"type": "monthly", "daysOfWeek": [], "until": null, "dayOfMonth": "last"}
    {"type": "monthly", "daysOfWeek": [], "until": null, "byWeekday": "first-monday"}

Weekdays are ISO numbers (1=Monday .. 7=Sunday). ``until`` is inclusive: a bare
date covers that whole UTC day, a timestamp bounds occurrence starts.
"""
from __future__ import annotations

import dataclasses
import datetime as _dt
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from duosync.core.exceptions import RecurrenceRuleError
from duosync.timeline.types import (
    LAST_DAY,
    Category,
    DailyRule,
    DayOfMonth,
    DayWindow,
    Interval,
    MonthlyRule,
    NthWeekday,
    RecurrenceOverride,
    RecurrenceRule,
    WeeklyRule,
)

logger = logging.getLogger(__name__)

_RRULE_WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
ORDINALS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "last": -1}
_ORDINAL_NAMES = {v: k for k, v in ORDINALS.items()}


# ── Parsing ───────────────────────────────────────────────────────────────────

def _parse_days_of_week(raw: Any) -> frozenset:
    if raw in (None, ""):
        return frozenset()
    if not isinstance(raw, (list, tuple, set, frozenset)):
        raise RecurrenceRuleError("daysOfWeek must be a list", details={"field": "daysOfWeek"})
    days = set()
    for item in raw:
        try:
            day = int(item)
        except (TypeError, ValueError):
            raise RecurrenceRuleError(
                f"daysOfWeek entry {item!r} is not a weekday number", details={"field": "daysOfWeek"}
            ) from None
        if not 1 <= day <= 7:
            raise RecurrenceRuleError(
                f"daysOfWeek entry {day} is outside 1..7", details={"field": "daysOfWeek"}
            )
        days.add(day)
    return frozenset(days)


def parse_instant(raw: Any, field: str = "until") -> Optional[_dt.datetime]:
    """UTC instant from an ISO value; a bare date means the last instant of that UTC day."""
    if raw in (None, ""):
        return None
    if isinstance(raw, _dt.datetime):
        value = raw
    elif isinstance(raw, _dt.date):
        value = _dt.datetime.combine(raw, _dt.time.max)
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            if len(text) == 10:
                value = _dt.datetime.combine(_dt.date.fromisoformat(text), _dt.time.max)
            else:
                value = _dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise RecurrenceRuleError(f"{field} {raw!r} is not an ISO date", details={"field": field}) from None
    else:
        raise RecurrenceRuleError(f"{field} {raw!r} is not an ISO date", details={"field": field})
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


def _parse_day_of_month(raw: Any) -> DayOfMonth:
    if isinstance(raw, str) and raw.strip().lower() == "last":
        return DayOfMonth(LAST_DAY)
    try:
        day = int(raw)
    except (TypeError, ValueError):
        raise RecurrenceRuleError(
            f"dayOfMonth {raw!r} must be 1..31 or 'last'", details={"field": "dayOfMonth"}
        ) from None
    if day != LAST_DAY and not 1 <= day <= 31:
        raise RecurrenceRuleError(
            f"dayOfMonth {day} must be 1..31 or 'last'", details={"field": "dayOfMonth"}
        )
    return DayOfMonth(day)


def _parse_by_weekday(raw: Any) -> NthWeekday:
    parts = str(raw or "").strip().lower().replace("_", "-").replace(" ", "-").split("-")
    if len(parts) != 2 or parts[0] not in ORDINALS or parts[1] not in WEEKDAY_NAMES:
        raise RecurrenceRuleError(
            f"byWeekday {raw!r} must look like 'first-monday' or 'last-friday'",
            details={"field": "byWeekday"},
        )
    return NthWeekday(ordinal=ORDINALS[parts[0]], weekday=WEEKDAY_NAMES.index(parts[1]) + 1)


def parse_recurrence_rule(raw: Mapping[str, Any]) -> RecurrenceRule:
    """Turn a stored rule mapping into a typed rule. Raises RecurrenceRuleError."""
    if not isinstance(raw, Mapping):
        raise RecurrenceRuleError("recurrence rule must be an object")
    rule_type = raw.get("type")
    days = _parse_days_of_week(raw.get("daysOfWeek"))
    until = parse_instant(raw.get("until"))
    has_dom = raw.get("dayOfMonth") is not None
    has_nth = raw.get("byWeekday") not in (None, "")

    if rule_type in ("daily", "weekly"):
        if has_dom or has_nth:
            raise RecurrenceRuleError(
                f"dayOfMonth/byWeekday are only valid for monthly rules, not {rule_type}",
                details={"field": "type"},
            )
        cls = DailyRule if rule_type == "daily" else WeeklyRule
        return cls(days_of_week=days, until=until)

    if rule_type == "monthly":
        if has_dom == has_nth:
            raise RecurrenceRuleError(
                "monthly rule needs exactly one of dayOfMonth or byWeekday",
                details={"field": "dayOfMonth" if not has_dom else "byWeekday"},
            )
        anchor = _parse_day_of_month(raw["dayOfMonth"]) if has_dom else _parse_by_weekday(raw["byWeekday"])
        return MonthlyRule(anchor=anchor, days_of_week=days, until=until)

    raise RecurrenceRuleError(
        f"unknown recurrence type {rule_type!r}; expected daily, weekly or monthly",
        details={"field": "type"},
    )


def check_rule_consistency(rule: RecurrenceRule) -> None:
    """
    Write-time check for rules that can never produce an occurrence.
    Raises RecurrenceRuleError; the resolver itself never calls this.
    """
    if isinstance(rule, MonthlyRule) and isinstance(rule.anchor, NthWeekday) and rule.days_of_week:
        if rule.anchor.weekday not in rule.days_of_week:
            raise RecurrenceRuleError(
                "byWeekday names a weekday that daysOfWeek excludes; the rule would never occur",
                details={"field": "daysOfWeek"},
            )


def rule_to_dict(rule: RecurrenceRule) -> Dict[str, Any]:
    """Inverse of parse_recurrence_rule, in the stored JSON shape."""
    out: Dict[str, Any] = {
        "type": {DailyRule: "daily", WeeklyRule: "weekly", MonthlyRule: "monthly"}[type(rule)],
        "daysOfWeek": sorted(rule.days_of_week),
        "until": rule.until.isoformat() if rule.until else None,
    }
    if isinstance(rule, MonthlyRule):
        if isinstance(rule.anchor, DayOfMonth):
            out["dayOfMonth"] = "last" if rule.anchor.day == LAST_DAY else rule.anchor.day
        else:
            out["byWeekday"] = f"{_ORDINAL_NAMES[rule.anchor.ordinal]}-{WEEKDAY_NAMES[rule.anchor.weekday - 1]}"
    return out


# ── Expansion ─────────────────────────────────────────────────────────────────

def _rrule_weekdays(days: Iterable[int]) -> Tuple:
    return tuple(_RRULE_WEEKDAYS[d - 1] for d in sorted(days))


def _anchor(template_start: _dt.datetime, earliest: _dt.datetime) -> _dt.datetime:
    """
    dtstart for expansion: the template's time of day on the day before
    ``earliest``, but never before the template itself. Every rule here has
    interval 1, so moving dtstart forward does not shift the occurrence grid.
    """
    lead_day = (earliest - _dt.timedelta(days=1)).date()
    shifted = _dt.datetime.combine(lead_day, template_start.timetz())
    return max(template_start, shifted)


def occurrence_starts(template: Interval, window: DayWindow) -> List[_dt.datetime]:
    """
    Start instants of ``template``'s occurrences that overlap ``window``.

    An occurrence that starts before the window but is still running at
    window.start (a 22:00-06:00 sleep block) is included; callers clamp it.
    """
    rule = template.recurrence
    if rule is None:
        return []
    if template.start > window.end:
        return []
    earliest = window.start - template.duration
    if rule.until is not None and rule.until <= earliest:
        return []

    dtstart = _anchor(template.start, earliest)
    kwargs: Dict[str, Any] = {"dtstart": dtstart}
    if rule.until is not None:
        kwargs["until"] = rule.until

    if isinstance(rule, DailyRule):
        freq = DAILY
        if rule.days_of_week:
            kwargs["byweekday"] = _rrule_weekdays(rule.days_of_week)
    elif isinstance(rule, WeeklyRule):
        freq = WEEKLY
        days = rule.days_of_week or {template.start.isoweekday()}
        kwargs["byweekday"] = _rrule_weekdays(days)
    else:
        freq = MONTHLY
        anchor = rule.anchor
        if isinstance(anchor, DayOfMonth):
            kwargs["bymonthday"] = anchor.day
            if rule.days_of_week:
                kwargs["byweekday"] = _rrule_weekdays(rule.days_of_week)
        else:
            if rule.days_of_week and anchor.weekday not in rule.days_of_week:
                return []
            kwargs["byweekday"] = _RRULE_WEEKDAYS[anchor.weekday - 1](anchor.ordinal)

    starts = rrule(freq, **kwargs).between(earliest, window.end, inc=True)
    return [s for s in starts if s > earliest]


def _apply_override(occurrence: Interval, override: RecurrenceOverride) -> Interval:
    changes: Dict[str, Any] = {}
    modified = override.modified or {}
    try:
        if modified.get("start_ts"):
            changes["start"] = parse_instant(modified["start_ts"], "start_ts")
        if modified.get("end_ts"):
            changes["end"] = parse_instant(modified["end_ts"], "end_ts")
        if modified.get("category"):
            changes["category"] = Category(modified["category"])
    except (RecurrenceRuleError, ValueError):
        logger.warning(
            "Ignoring malformed override for recurrence %s on %s",
            override.recurrence_id, override.exception_date,
        )
        return occurrence
    return dataclasses.replace(occurrence, **changes)


def resolve(
    intervals: Iterable[Interval],
    window: DayWindow,
    overrides: Iterable[RecurrenceOverride] = (),
) -> List[Interval]:
    """
    Expand recurring intervals into concrete occurrences inside ``window``.

    Non-recurring intervals pass through unchanged. Each occurrence keeps the
    template's duration, category, description and owner, and carries no rule.
    An override for an occurrence's UTC start date cancels it or replaces its
    fields. Occurrences may extend past either window bound; callers clamp them.
    """
    by_key: Dict[Tuple[int, _dt.date], RecurrenceOverride] = {
        (o.recurrence_id, o.exception_date): o for o in overrides
    }
    resolved: List[Interval] = []
    for interval in intervals:
        if not interval.is_recurring:
            resolved.append(interval)
            continue

        duration = interval.duration
        for start in occurrence_starts(interval, window):
            occurrence = dataclasses.replace(
                interval, start=start, end=start + duration, recurrence=None
            )
            override = by_key.get((interval.id, start.date()))
            if override is not None:
                if override.is_cancellation:
                    continue
                occurrence = _apply_override(occurrence, override)
                if occurrence.end <= occurrence.start:
                    continue
            resolved.append(occurrence)
    return resolved
