"""CRUD helpers shared by the DuoSync repositories (integer primary keys)."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Subclasses set ``model``. Writes flush and refresh but never commit: the
    request-scoped session owns the transaction.
    """

    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _persist(self, instance: Any) -> Any:
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelT]:
        """Page through rows in id order so offsets are stable."""
        rows = await self.session.scalars(
            select(self.model).order_by(self.model.id).offset(skip).limit(limit)  # type: ignore[attr-defined]
        )
        return list(rows)

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        return await self._persist(instance)

    async def update(self, id: int, data: dict[str, Any]) -> Optional[ModelT]:
        """Apply ``data`` column by column; None when the row is gone."""
        instance = await self.get_by_id(id)
        if instance is not None:
            for column, value in data.items():
                setattr(instance, column, value)
            instance = await self._persist(instance)
        return instance

    async def delete(self, id: int) -> bool:
        instance = await self.get_by_id(id)
        if instance is None:
            return False
        await self.session.delete(instance)
        await self.session.flush()
        return True
