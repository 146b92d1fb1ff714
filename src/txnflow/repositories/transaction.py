"""Transaction repository with filtering and aggregation queries.

Every query is scoped by ``user_id``.
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.core.types import Direction
from txnflow.models.transaction import Transaction
from txnflow.repositories.base import BaseRepository


@dataclass
class TransactionFilters:
    """Optional list filters; unset fields are ignored."""

    start_date: date | None = None
    end_date: date | None = None
    direction: str | None = None
    category: str | None = None
    source: str | None = None
    merchant: str | None = None


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model with filtering and analytics queries."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_for_user(self, user_id: str, transaction_id: UUID) -> Transaction | None:
        """Get a transaction only if it belongs to ``user_id``."""
        return await self.find_one(user_id=user_id, id=transaction_id)

    async def get_by_hash(self, user_id: str, duplicate_hash: str) -> Transaction | None:
        """Existing transaction with the same content hash, if any."""
        return await self.find_one(user_id=user_id, duplicate_hash=duplicate_hash)

    async def search(
        self,
        user_id: str,
        filters: TransactionFilters | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Transaction], int]:
        """Filtered, newest-first page of a user's transactions.

        Returns:
            (rows on this page, total matching rows)
        """
        filters = filters or TransactionFilters()
        conditions = [Transaction.user_id == user_id]
        if filters.start_date:
            conditions.append(Transaction.txn_date >= filters.start_date)
        if filters.end_date:
            conditions.append(Transaction.txn_date <= filters.end_date)
        if filters.direction:
            conditions.append(Transaction.direction == filters.direction)
        if filters.category:
            conditions.append(Transaction.category == filters.category)
        if filters.source:
            conditions.append(Transaction.source == filters.source)
        if filters.merchant:
            pattern = f"%{filters.merchant}%"
            conditions.append(
                or_(
                    Transaction.merchant_normalized.ilike(pattern),
                    Transaction.merchant_raw_text.ilike(pattern),
                    Transaction.description.ilike(pattern),
                )
            )

        total_result = await self.db.execute(select(func.count(Transaction.id)).where(*conditions))
        total = int(total_result.scalar_one())

        result = await self.db.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.occurred_at.desc(), Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def stats(
        self, user_id: str, start_date: date | None = None, end_date: date | None = None
    ) -> dict:
        """Aggregate a user's transactions (amounts in minor units).

        Returns dict with total (count), total_debit, total_credit,
        by_category (debit spend), by_source (count) and by_month
        ("YYYY-MM" -> debit spend).
        """
        conditions = [Transaction.user_id == user_id]
        if start_date:
            conditions.append(Transaction.txn_date >= start_date)
        if end_date:
            conditions.append(Transaction.txn_date <= end_date)
        is_debit = Transaction.direction == Direction.DEBIT.value

        totals = await self.db.execute(
            select(Transaction.direction, func.count(Transaction.id), func.sum(Transaction.amount_cents))
            .where(*conditions)
            .group_by(Transaction.direction)
        )
        total = 0
        sums = {Direction.DEBIT.value: 0, Direction.CREDIT.value: 0}
        for direction, count, amount in totals:
            total += int(count)
            sums[direction] = int(amount or 0)

        by_category_result = await self.db.execute(
            select(Transaction.category, func.sum(Transaction.amount_cents))
            .where(*conditions, is_debit)
            .group_by(Transaction.category)
        )
        by_category = {category: int(amount or 0) for category, amount in by_category_result}

        by_source_result = await self.db.execute(
            select(Transaction.source, func.count(Transaction.id)).where(*conditions).group_by(Transaction.source)
        )
        by_source = {source: int(count) for source, count in by_source_result}

        # Day-level sums folded into months here; month extraction is not portable SQL.
        by_day_result = await self.db.execute(
            select(Transaction.txn_date, func.sum(Transaction.amount_cents))
            .where(*conditions, is_debit)
            .group_by(Transaction.txn_date)
        )
        by_month: dict[str, int] = {}
        for day, amount in by_day_result:
            key = day.strftime("%Y-%m")
            by_month[key] = by_month.get(key, 0) + int(amount or 0)

        return {
            "total": total,
            "total_debit": sums[Direction.DEBIT.value],
            "total_credit": sums[Direction.CREDIT.value],
            "by_category": by_category,
            "by_source": by_source,
            "by_month": dict(sorted(by_month.items())),
        }

    async def merchant_history(
        self,
        user_id: str,
        merchant: str,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> list[Transaction]:
        """Same-merchant transactions in ``[start_date, end_date]``, oldest first."""
        stmt = select(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.merchant_normalized == merchant,
            Transaction.txn_date >= start_date,
            Transaction.txn_date <= end_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(Transaction.id != exclude_id)
        result = await self.db.execute(stmt.order_by(Transaction.txn_date.asc()))
        return list(result.scalars().all())

    async def link_to_group(self, transaction_ids: Iterable[UUID], group_id: UUID) -> None:
        """Mark transactions as members of a recurring group (no commit)."""
        ids = list(transaction_ids)
        if not ids:
            return
        await self.db.execute(
            update(Transaction)
            .where(Transaction.id.in_(ids))
            .values(is_recurring=True, recurring_group_id=group_id)
            .execution_options(synchronize_session="fetch")
        )

    async def group_members(self, group_id: UUID) -> list[Transaction]:
        """Transactions linked to a recurring group, oldest first."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.recurring_group_id == group_id)
            .order_by(Transaction.txn_date.asc())
        )
        return list(result.scalars().all())

    async def unlink_from_group(self, transaction_ids: Iterable[UUID]) -> None:
        """Detach transactions from their recurring group (no commit)."""
        ids = list(transaction_ids)
        if not ids:
            return
        await self.db.execute(
            update(Transaction)
            .where(Transaction.id.in_(ids))
            .values(is_recurring=False, recurring_group_id=None)
            .execution_options(synchronize_session="fetch")
        )

    async def update_category_for_merchant(self, user_id: str, merchant: str, category: str) -> int:
        """Re-categorize a user's uncorrected transactions for one merchant (no commit).

        Returns:
            Number of rows updated
        """
        result = await self.db.execute(
            update(Transaction)
            .where(
                Transaction.user_id == user_id,
                func.lower(Transaction.merchant_normalized) == merchant.strip().lower(),
                Transaction.user_corrected_category.is_(None),
            )
            .values(category=category, category_confidence=1.0, category_method="user_override")
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)

    async def delete_for_user(self, user_id: str, transaction_id: UUID) -> bool:
        """Hard delete a user's transaction.

        Recurring group statistics are not adjusted here; callers refresh
        the group (``RecurringDetector.refresh_group``).
        """
        transaction = await self.get_for_user(user_id, transaction_id)
        if not transaction:
            return False
        await self.db.delete(transaction)
        await self.db.commit()
        return True
