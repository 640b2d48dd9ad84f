"""BusyInterval and RecurrenceException ORM models."""
from __future__ import annotations

import datetime as _dt
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from duosync.infra.database.models.base import Base, TimestampMixin


class BusyInterval(Base, TimestampMixin):
    """
    A busy span of one user.
    category: "sleep" | "busy" | "other"
    With recurrence_rule set, start_ts/end_ts are the first occurrence's template.
    """

    __tablename__ = "busy_intervals"
    __table_args__ = (
        CheckConstraint("end_ts > start_ts", name="end_after_start"),
        CheckConstraint("end_ts - start_ts <= INTERVAL '7 days'", name="max_duration"),
        CheckConstraint("category IN ('sleep', 'busy', 'other')", name="known_category"),
        Index("busy_intervals_range_idx", "start_ts", "end_ts"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_ts: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_ts: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # {"type", "daysOfWeek", "until", "dayOfMonth" | "byWeekday"}
    recurrence_rule: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)


class RecurrenceException(Base):
    """
    Cancels (modified_interval NULL) or replaces one occurrence of a recurring interval.
    modified_interval: {"start_ts"?, "end_ts"?, "category"?}
    """

    __tablename__ = "recurrence_exceptions"
    __table_args__ = (
        UniqueConstraint("recurrence_id", "exception_date", name="uq_recurrence_exception_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recurrence_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("busy_intervals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exception_date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    modified_interval: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[_dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
