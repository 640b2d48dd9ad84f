"""RecurrenceException repository."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional, Sequence

from sqlalchemy import select

from duosync.infra.database.models.interval import RecurrenceException
from duosync.infra.database.repositories.base import BaseRepository


class RecurrenceExceptionRepository(BaseRepository[RecurrenceException]):
    model = RecurrenceException

    async def list_for_recurrences(
        self,
        recurrence_ids: Sequence[int],
        start_date: _dt.date,
        end_date: _dt.date,
    ) -> List[RecurrenceException]:
        if not recurrence_ids:
            return []
        stmt = (
            select(RecurrenceException)
            .where(RecurrenceException.recurrence_id.in_(list(recurrence_ids)))
            .where(RecurrenceException.exception_date >= start_date)
            .where(RecurrenceException.exception_date <= end_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_recurrence(self, recurrence_id: int) -> List[RecurrenceException]:
        stmt = (
            select(RecurrenceException)
            .where(RecurrenceException.recurrence_id == recurrence_id)
            .order_by(RecurrenceException.exception_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_date(self, recurrence_id: int, exception_date: _dt.date) -> Optional[RecurrenceException]:
        stmt = (
            select(RecurrenceException)
            .where(RecurrenceException.recurrence_id == recurrence_id)
            .where(RecurrenceException.exception_date == exception_date)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
