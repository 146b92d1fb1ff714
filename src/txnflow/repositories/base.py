"""Base repository with generic CRUD operations."""
from typing import Any, Generic, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from txnflow.models.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Generic repository providing CRUD operations for any model.

    Filters are passed as ``column=value`` keyword arguments and combined
    with AND.
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model

    def _filtered(self, stmt: Select, filters: dict[str, Any]) -> Select:
        for key, value in filters.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def get_by_id(self, id: UUID) -> T | None:
        """Get a single record by ID."""
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def find_one(self, **filters: Any) -> T | None:
        """First record matching all filters."""
        result = await self.db.execute(self._filtered(select(self.model), filters).limit(1))
        return result.scalars().first()

    async def find_many(
        self,
        *,
        order_by: Any = None,
        skip: int = 0,
        limit: int | None = 100,
        **filters: Any,
    ) -> list[T]:
        """Records matching all filters, sorted and paginated."""
        stmt = self._filtered(select(self.model), filters)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        """Number of records matching all filters."""
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def create(self, obj: T, commit: bool = True) -> T:
        """Create a new record.

        With ``commit=False`` the row is only flushed, leaving the
        transaction open for the caller.
        """
        self.db.add(obj)
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()
        return obj

    async def update(self, id: UUID, data: dict) -> T | None:
        """Update a record by ID with provided data."""
        obj = await self.get_by_id(id)
        if not obj:
            return None

        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID."""
        obj = await self.get_by_id(id)
        if not obj:
            return False

        await self.db.delete(obj)
        await self.db.commit()
        return True
