"""User repository."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from duosync.infra.database.models.user import User
from duosync.infra.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_timezone(self, id: int) -> Optional[str]:
        stmt = select(User.timezone).where(User.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
