"""Recurring group repository."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.models.recurring_group import RecurringGroup
from txnflow.repositories.base import BaseRepository


class RecurringGroupRepository(BaseRepository[RecurringGroup]):
    """Repository for RecurringGroup model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, RecurringGroup)

    async def get_active(
        self, user_id: str, merchant: str, for_update: bool = False
    ) -> RecurringGroup | None:
        """The active group for (user, merchant).

        With ``for_update`` the row is locked until the session's
        transaction ends (ignored by backends without row locks).
        """
        stmt = select(RecurringGroup).where(
            RecurringGroup.user_id == user_id,
            RecurringGroup.merchant_normalized == merchant,
            RecurringGroup.is_active.is_(True),
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_active(self, user_id: str) -> list[RecurringGroup]:
        """A user's active groups, soonest expected payment first."""
        return await self.find_many(
            user_id=user_id,
            is_active=True,
            order_by=RecurringGroup.next_expected_date.asc(),
            limit=None,
        )
