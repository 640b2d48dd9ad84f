"""BusyInterval repository: day-window fetch for the timeline plus per-user CRUD helpers."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional, Sequence

from sqlalchemy import and_, or_, select

from duosync.infra.database.models.interval import BusyInterval
from duosync.infra.database.repositories.base import BaseRepository


class IntervalRepository(BaseRepository[BusyInterval]):
    model = BusyInterval

    async def list_for_window(
        self,
        user_ids: Sequence[int],
        day_start: _dt.datetime,
        day_end: _dt.datetime,
    ) -> List[BusyInterval]:
        """
        Rows that can contribute to [day_start, day_end]:
        concrete rows intersecting the window, and every recurring row whose
        template starts before the window ends (its occurrences may land
        inside even when the template span itself is long past).
        """
        if not user_ids:
            return []
        stmt = (
            select(BusyInterval)
            .where(BusyInterval.user_id.in_(list(user_ids)))
            .where(
                or_(
                    and_(BusyInterval.start_ts < day_end, BusyInterval.end_ts > day_start),
                    and_(BusyInterval.recurrence_rule.is_not(None), BusyInterval.start_ts <= day_end),
                )
            )
            .order_by(BusyInterval.start_ts, BusyInterval.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[_dt.datetime] = None,
        end: Optional[_dt.datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[BusyInterval]:
        stmt = select(BusyInterval).where(BusyInterval.user_id == user_id)
        if start is not None:
            stmt = stmt.where(BusyInterval.end_ts > start)
        if end is not None:
            stmt = stmt.where(BusyInterval.start_ts < end)
        stmt = stmt.order_by(BusyInterval.start_ts, BusyInterval.id).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_user(self, id: int, user_id: int) -> Optional[BusyInterval]:
        """Ownership-checked lookup: None when the row is missing or belongs to someone else."""
        stmt = select(BusyInterval).where(BusyInterval.id == id).where(BusyInterval.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
