"""Pydantic schemas for busy intervals, recurrence rules and per-occurrence exceptions.

Rule field names follow the stored JSON (camelCase), so a rule read back from
the API can be submitted again unchanged.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

CategoryName = Literal["sleep", "busy", "other"]


class _RuleBase(BaseModel):
    daysOfWeek: List[int] = Field(default_factory=list, description="ISO weekdays, 1=Monday .. 7=Sunday")
    until: Optional[str] = Field(None, description="Inclusive end: YYYY-MM-DD or an ISO timestamp")

    class Config:
        extra = "forbid"


class DailyRuleSchema(_RuleBase):
    type: Literal["daily"]


class WeeklyRuleSchema(_RuleBase):
    type: Literal["weekly"]


class MonthlyRuleSchema(_RuleBase):
    """Exactly one of dayOfMonth / byWeekday; checked by the service."""

    type: Literal["monthly"]
    dayOfMonth: Optional[Union[int, Literal["last"]]] = Field(None, description="1..31, -1 or 'last'")
    byWeekday: Optional[str] = Field(None, description="e.g. 'first-monday', 'last-friday'")


RecurrenceRuleSchema = Annotated[
    Union[DailyRuleSchema, WeeklyRuleSchema, MonthlyRuleSchema],
    Field(discriminator="type"),
]


class IntervalCreate(BaseModel):
    start_ts: datetime
    end_ts: datetime
    category: CategoryName
    description: Optional[str] = Field(None, max_length=2000)
    recurrence_rule: Optional[RecurrenceRuleSchema] = None


class IntervalUpdate(BaseModel):
    start_ts: Optional[datetime] = None
    end_ts: Optional[datetime] = None
    category: Optional[CategoryName] = None
    description: Optional[str] = Field(None, max_length=2000)
    recurrence_rule: Optional[RecurrenceRuleSchema] = Field(
        None, description="Set to null to make the interval non-recurring"
    )


class IntervalResponse(BaseModel):
    id: int
    user_id: int
    start_ts: datetime
    end_ts: datetime
    category: str
    description: Optional[str]
    recurrence_rule: Optional[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OccurrenceOverride(BaseModel):
    start_ts: Optional[datetime] = None
    end_ts: Optional[datetime] = None
    category: Optional[CategoryName] = None


class ExceptionCreate(BaseModel):
    """Omit modified_interval to cancel the occurrence on exception_date (UTC)."""

    exception_date: date
    modified_interval: Optional[OccurrenceOverride] = None


class ExceptionResponse(BaseModel):
    id: int
    recurrence_id: int
    exception_date: date
    modified_interval: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True
