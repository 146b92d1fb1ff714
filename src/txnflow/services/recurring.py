"""Recurring payment detection.

Groups a user's same-merchant transactions into a ``RecurringGroup`` when
their amounts are stable and their spacing matches a known cadence:

- Case A: an active group exists for the merchant. The transaction joins it
  if its amount is within the allowed variance of the running average.
- Case B: no active group. Look back over the user's history for the
  merchant; two or more earlier transactions with similar amounts and a
  regular interval start a new group.

Detection runs off the request path (see ``services.background``) and
never raises for "no pattern".
"""

import logging
from datetime import date, timedelta
from typing import Iterable
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.config import settings
from txnflow.core.types import Interval
from txnflow.models.recurring_group import RecurringGroup
from txnflow.models.transaction import Transaction
from txnflow.repositories.recurring_group import RecurringGroupRepository
from txnflow.repositories.transaction import TransactionRepository

logger = logging.getLogger(__name__)

# Inclusive average-gap ranges in days.
INTERVAL_RANGES: list[tuple[Interval, int, int]] = [
    (Interval.WEEKLY, 6, 8),
    (Interval.BIWEEKLY, 12, 16),
    (Interval.MONTHLY, 25, 35),
    (Interval.QUARTERLY, 85, 95),
    (Interval.YEARLY, 360, 370),
]

INTERVAL_STEPS: dict[Interval, relativedelta] = {
    Interval.WEEKLY: relativedelta(days=7),
    Interval.BIWEEKLY: relativedelta(days=14),
    Interval.MONTHLY: relativedelta(months=1),
    Interval.QUARTERLY: relativedelta(months=3),
    Interval.YEARLY: relativedelta(years=1),
}


def classify_interval(dates: Iterable[date]) -> Interval | None:
    """Cadence implied by the average gap between consecutive dates.

    Example:
        >>> classify_interval([date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 2)])
        <Interval.MONTHLY: 'monthly'>
    """
    ordered = sorted(dates)
    if len(ordered) < 2:
        return None
    gaps = [(later - earlier).days for earlier, later in zip(ordered, ordered[1:])]
    average_gap = sum(gaps) / len(gaps)
    for interval, low, high in INTERVAL_RANGES:
        if low <= average_gap <= high:
            return interval
    return None


def next_expected_date(last: date, interval: Interval | str) -> date:
    """``last`` advanced by one cadence step (month ends clamp)."""
    return last + INTERVAL_STEPS[Interval(interval)]


def amount_variance(amount_cents: int, average_cents: float) -> float:
    """Relative distance of an amount from an average."""
    if average_cents == 0:
        return 0.0 if amount_cents == 0 else float("inf")
    return abs(amount_cents - average_cents) / average_cents


class RecurringDetector:
    """Detects and maintains recurring groups for one database session."""

    def __init__(
        self,
        db: AsyncSession,
        variance_threshold: float | None = None,
        lookback_days: int | None = None,
    ):
        self.db = db
        self.variance_threshold = (
            settings.recurring_amount_variance if variance_threshold is None else variance_threshold
        )
        self.lookback_days = settings.recurring_lookback_days if lookback_days is None else lookback_days
        self.transaction_repo = TransactionRepository(db)
        self.group_repo = RecurringGroupRepository(db)

    async def detect_by_id(self, user_id: str, transaction_id: UUID) -> RecurringGroup | None:
        """Load a user's transaction and run detection for it."""
        transaction = await self.transaction_repo.get_for_user(user_id, transaction_id)
        if transaction is None:
            logger.info("Recurring detection skipped: transaction gone", extra={"transaction_id": str(transaction_id)})
            return None
        return await self.detect(transaction)

    async def detect(self, transaction: Transaction) -> RecurringGroup | None:
        """Link ``transaction`` to a recurring group, creating one if warranted.

        Returns:
            The group the transaction now belongs to, or None
        """
        if not transaction.merchant_normalized or not transaction.merchant_normalized.strip():
            return None
        if transaction.recurring_group_id is not None:
            return None

        group = await self.group_repo.get_active(
            transaction.user_id, transaction.merchant_normalized, for_update=True
        )
        if group is not None:
            return await self._extend_group(group, transaction)
        return await self._create_group(transaction)

    async def list_active(self, user_id: str) -> list[RecurringGroup]:
        """A user's active groups, soonest expected payment first."""
        return await self.group_repo.list_active(user_id)

    async def refresh_group(self, group_id: UUID) -> RecurringGroup | None:
        """Recompute a group's statistics from its remaining members.

        Called after a member is deleted. A group left with fewer than two
        members is deactivated and its last member unlinked.
        """
        group = await self.group_repo.get_by_id(group_id)
        if group is None:
            return None

        members = await self.transaction_repo.group_members(group.id)
        group.transaction_count = len(members)
        group.total_amount_cents = sum(member.amount_cents for member in members)
        if len(members) < 2:
            group.is_active = False
            await self.transaction_repo.unlink_from_group(member.id for member in members)
        else:
            group.average_amount_cents = round(group.total_amount_cents / len(members))
            group.last_transaction_date = members[-1].txn_date
            group.next_expected_date = next_expected_date(group.last_transaction_date, group.interval)
        await self.db.commit()

        logger.info(
            "Recurring group refreshed",
            extra={"group_id": str(group.id), "transaction_count": group.transaction_count},
        )
        return group

    async def _extend_group(self, group: RecurringGroup, transaction: Transaction) -> RecurringGroup | None:
        variance = amount_variance(transaction.amount_cents, group.average_amount_cents)
        if variance > self.variance_threshold:
            # Outliers stay unlinked; the group keeps its statistics.
            logger.info(
                "Amount outside recurring group variance",
                extra={"group_id": str(group.id), "variance": round(variance, 4)},
            )
            await self.db.commit()
            return None

        group.transaction_count += 1
        group.total_amount_cents += transaction.amount_cents
        group.average_amount_cents = round(group.total_amount_cents / group.transaction_count)
        group.last_transaction_date = max(group.last_transaction_date, transaction.txn_date)
        group.next_expected_date = next_expected_date(group.last_transaction_date, group.interval)

        await self.transaction_repo.link_to_group([transaction.id], group.id)
        await self.db.commit()

        logger.info(
            "Transaction linked to recurring group",
            extra={"group_id": str(group.id), "transaction_count": group.transaction_count},
        )
        return group

    async def _create_group(self, transaction: Transaction) -> RecurringGroup | None:
        # Statements and feed backfills can arrive newest first, so later
        # payments within the same span count as history too.
        span = timedelta(days=self.lookback_days)
        history = await self.transaction_repo.merchant_history(
            transaction.user_id,
            transaction.merchant_normalized,
            transaction.txn_date - span,
            transaction.txn_date + span,
            exclude_id=transaction.id,
        )
        if len(history) < 2:
            return None

        members = [*history, transaction]
        amounts = [member.amount_cents for member in members]
        mean = sum(amounts) / len(amounts)
        if any(amount_variance(amount, mean) > self.variance_threshold for amount in amounts):
            return None

        interval = classify_interval(member.txn_date for member in members)
        if interval is None:
            return None

        last_date = max(member.txn_date for member in members)
        total = sum(amounts)
        group = RecurringGroup(
            user_id=transaction.user_id,
            merchant_normalized=transaction.merchant_normalized,
            category=transaction.category,
            average_amount_cents=round(total / len(members)),
            amount_variance=self.variance_threshold,
            interval=interval.value,
            last_transaction_date=last_date,
            next_expected_date=next_expected_date(last_date, interval),
            transaction_count=len(members),
            total_amount_cents=total,
            is_active=True,
        )

        try:
            async with self.db.begin_nested():
                self.db.add(group)
        except IntegrityError:
            # Another worker created the active group first; join theirs.
            logger.info("Recurring group created concurrently; extending existing group")
            winner = await self.group_repo.get_active(
                transaction.user_id, transaction.merchant_normalized, for_update=True
            )
            if winner is None:
                raise
            return await self._extend_group(winner, transaction)

        await self.transaction_repo.link_to_group([member.id for member in members], group.id)
        await self.db.commit()

        logger.info(
            "Recurring group created",
            extra={"group_id": str(group.id), "interval": interval.value, "transaction_count": len(members)},
        )
        return group
