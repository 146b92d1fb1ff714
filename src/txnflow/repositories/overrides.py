"""Per-user merchant alias and category override repositories."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.models.merchant_alias_override import MerchantAliasOverride
from txnflow.models.merchant_category_override import MerchantCategoryOverride
from txnflow.repositories.base import BaseRepository


class MerchantAliasOverrideRepository(BaseRepository[MerchantAliasOverride]):
    """Learned raw-text -> merchant name aliases."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MerchantAliasOverride)

    async def get_map(self, user_id: str) -> dict[str, str]:
        """alias_key -> merchant_name for one user."""
        result = await self.db.execute(
            select(MerchantAliasOverride.alias_key, MerchantAliasOverride.merchant_name).where(
                MerchantAliasOverride.user_id == user_id
            )
        )
        return {alias_key: merchant_name for alias_key, merchant_name in result}

    async def upsert(self, user_id: str, alias_key: str, merchant_name: str) -> MerchantAliasOverride:
        """Insert or update the alias (no commit)."""
        existing = await self.find_one(user_id=user_id, alias_key=alias_key)
        if existing:
            existing.merchant_name = merchant_name
            return existing
        return await self.create(
            MerchantAliasOverride(user_id=user_id, alias_key=alias_key, merchant_name=merchant_name),
            commit=False,
        )


class MerchantCategoryOverrideRepository(BaseRepository[MerchantCategoryOverride]):
    """User-chosen categories per merchant."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MerchantCategoryOverride)

    async def get_map(self, user_id: str) -> dict[str, str]:
        """merchant_key -> category for one user."""
        result = await self.db.execute(
            select(MerchantCategoryOverride.merchant_key, MerchantCategoryOverride.category).where(
                MerchantCategoryOverride.user_id == user_id
            )
        )
        return {merchant_key: category for merchant_key, category in result}

    async def upsert(self, user_id: str, merchant_key: str, category: str) -> MerchantCategoryOverride:
        """Insert or update the override (no commit)."""
        existing = await self.find_one(user_id=user_id, merchant_key=merchant_key)
        if existing:
            existing.category = category
            return existing
        return await self.create(
            MerchantCategoryOverride(user_id=user_id, merchant_key=merchant_key, category=category),
            commit=False,
        )
