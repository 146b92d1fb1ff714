"""Integration tests for recurring payment detection."""

from datetime import date
from uuid import uuid4

import pytest

from txnflow.models.recurring_group import RecurringGroup
from txnflow.repositories.recurring_group import RecurringGroupRepository
from txnflow.repositories.transaction import TransactionRepository
from txnflow.services.pipeline import TransactionPipeline
from txnflow.services.recurring import RecurringDetector

USER_ID = "user-123"


def _netflix(amount, when):
    return {"amount": amount, "type": "expense", "merchant": "NETFLIX", "date": when}


async def _add(pipeline: TransactionPipeline, amount, when, merchant="NETFLIX"):
    record = _netflix(amount, when)
    record["merchant"] = merchant
    result = await pipeline.process(record, USER_ID, "manual")
    return result.transaction


async def _detect(session_factory, transaction):
    async with session_factory() as session:
        return await RecurringDetector(session).detect_by_id(USER_ID, transaction.id)


async def _load(session_factory, transaction):
    async with session_factory() as session:
        return await TransactionRepository(session).get_for_user(USER_ID, transaction.id)


async def _active_groups(session_factory):
    async with session_factory() as session:
        return await RecurringGroupRepository(session).list_active(USER_ID)


async def _monthly_group(pipeline, session_factory, amount=500):
    """Three same-amount monthly payments, detected in order."""
    txns = []
    for when in ("2024-01-01", "2024-01-31", "2024-03-01"):
        txn = await _add(pipeline, amount, when)
        await _detect(session_factory, txn)
        txns.append(txn)
    return txns


class TestGroupCreation:
    """No active group yet: history decides."""

    @pytest.mark.asyncio
    async def test_third_monthly_payment_creates_group(self, pipeline, session_factory):
        first = await _add(pipeline, 499, "2024-01-01")
        assert await _detect(session_factory, first) is None
        second = await _add(pipeline, 499, "2024-01-31")
        assert await _detect(session_factory, second) is None
        third = await _add(pipeline, 499, "2024-03-02")
        group = await _detect(session_factory, third)

        assert group is not None
        assert group.merchant_normalized == "Netflix"
        assert group.interval == "monthly"
        assert group.transaction_count == 3
        assert group.average_amount_cents == 49900
        assert group.total_amount_cents == 149700
        assert group.last_transaction_date == date(2024, 3, 2)
        assert group.next_expected_date == date(2024, 4, 2)
        assert group.category == "Entertainment"
        assert group.is_active is True

        for txn in (first, second, third):
            stored = await _load(session_factory, txn)
            assert stored.is_recurring is True
            assert stored.recurring_group_id == group.id

    @pytest.mark.asyncio
    async def test_newest_first_arrival_creates_group(self, pipeline, session_factory):
        txns = []
        for when in ("2024-03-02", "2024-01-31", "2024-01-01"):
            txn = await _add(pipeline, 499, when)
            await _detect(session_factory, txn)
            txns.append(txn)

        groups = await _active_groups(session_factory)

        assert len(groups) == 1
        assert groups[0].interval == "monthly"
        assert groups[0].transaction_count == 3
        assert groups[0].last_transaction_date == date(2024, 3, 2)
        assert groups[0].next_expected_date == date(2024, 4, 2)
        for txn in txns:
            stored = await _load(session_factory, txn)
            assert stored.recurring_group_id == groups[0].id

    @pytest.mark.asyncio
    async def test_later_payments_outside_span_are_ignored(self, pipeline, session_factory):
        first = await _add(pipeline, 500, "2023-01-01")
        await _add(pipeline, 500, "2023-07-01")
        await _add(pipeline, 500, "2023-08-01")

        assert await _detect(session_factory, first) is None

    @pytest.mark.asyncio
    async def test_amount_spread_prevents_group(self, pipeline, session_factory):
        await _add(pipeline, 500, "2024-01-01")
        await _add(pipeline, 500, "2024-01-31")
        third = await _add(pipeline, 650, "2024-03-01")

        assert await _detect(session_factory, third) is None
        assert await _active_groups(session_factory) == []

    @pytest.mark.asyncio
    async def test_irregular_spacing_prevents_group(self, pipeline, session_factory):
        await _add(pipeline, 500, "2024-01-01")
        await _add(pipeline, 500, "2024-01-20")
        third = await _add(pipeline, 500, "2024-02-09")

        assert await _detect(session_factory, third) is None

    @pytest.mark.asyncio
    async def test_history_outside_lookback_is_ignored(self, pipeline, session_factory):
        await _add(pipeline, 500, "2023-06-01")
        await _add(pipeline, 500, "2023-07-01")
        third = await _add(pipeline, 500, "2024-03-01")

        assert await _detect(session_factory, third) is None

    @pytest.mark.asyncio
    async def test_no_merchant(self, pipeline, session_factory):
        txn = await _add(pipeline, 10, "2024-01-01", merchant="")

        assert txn.merchant_normalized is None
        assert await _detect(session_factory, txn) is None

    @pytest.mark.asyncio
    async def test_missing_transaction(self, session_factory):
        async with session_factory() as session:
            assert await RecurringDetector(session).detect_by_id(USER_ID, uuid4()) is None


class TestGroupExtension:
    """An active group exists for the merchant."""

    @pytest.mark.asyncio
    async def test_similar_amount_joins_group(self, pipeline, session_factory):
        await _monthly_group(pipeline, session_factory)
        fourth = await _add(pipeline, 510, "2024-03-31")

        group = await _detect(session_factory, fourth)

        assert group is not None
        assert group.transaction_count == 4
        assert group.total_amount_cents == 201000
        assert group.average_amount_cents == 50250
        assert group.last_transaction_date == date(2024, 3, 31)
        assert group.next_expected_date == date(2024, 4, 30)
        stored = await _load(session_factory, fourth)
        assert stored.recurring_group_id == group.id

    @pytest.mark.asyncio
    async def test_outlier_stays_unlinked(self, pipeline, session_factory):
        await _monthly_group(pipeline, session_factory)
        outlier = await _add(pipeline, 650, "2024-03-31")

        assert await _detect(session_factory, outlier) is None

        groups = await _active_groups(session_factory)
        assert len(groups) == 1
        assert groups[0].transaction_count == 3
        assert groups[0].average_amount_cents == 50000
        stored = await _load(session_factory, outlier)
        assert stored.is_recurring is False
        assert stored.recurring_group_id is None

    @pytest.mark.asyncio
    async def test_already_linked_is_noop(self, pipeline, session_factory):
        txns = await _monthly_group(pipeline, session_factory)

        assert await _detect(session_factory, txns[-1]) is None
        groups = await _active_groups(session_factory)
        assert groups[0].transaction_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_creation_joins_existing_group(self, pipeline, session_factory):
        """Losing the unique-index race extends the winner instead of failing."""
        await _add(pipeline, 499, "2024-01-01")
        await _add(pipeline, 499, "2024-01-31")
        third = await _add(pipeline, 499, "2024-03-02")

        async with session_factory() as session:
            session.add(
                RecurringGroup(
                    user_id=USER_ID,
                    merchant_normalized="Netflix",
                    category="Entertainment",
                    average_amount_cents=49900,
                    amount_variance=0.1,
                    interval="monthly",
                    last_transaction_date=date(2024, 1, 31),
                    next_expected_date=date(2024, 2, 29),
                    transaction_count=2,
                    total_amount_cents=99800,
                    is_active=True,
                )
            )
            await session.commit()

        async with session_factory() as session:
            detector = RecurringDetector(session)
            transaction = await TransactionRepository(session).get_for_user(USER_ID, third.id)
            group = await detector._create_group(transaction)

        assert group is not None
        assert group.transaction_count == 3
        assert group.next_expected_date == date(2024, 4, 2)
        groups = await _active_groups(session_factory)
        assert len(groups) == 1
        assert groups[0].id == group.id


class TestGroupRefresh:
    """Deleting members keeps group statistics in step."""

    async def _delete(self, session_factory, transaction):
        async with session_factory() as session:
            assert await TransactionRepository(session).delete_for_user(USER_ID, transaction.id) is True

    async def _refresh(self, session_factory, group_id):
        async with session_factory() as session:
            return await RecurringDetector(session).refresh_group(group_id)

    @pytest.mark.asyncio
    async def test_deleting_latest_member_recomputes(self, pipeline, session_factory):
        txns = await _monthly_group(pipeline, session_factory)
        fourth = await _add(pipeline, 530, "2024-03-31")
        group = await _detect(session_factory, fourth)

        await self._delete(session_factory, fourth)
        refreshed = await self._refresh(session_factory, group.id)

        assert refreshed.is_active is True
        assert refreshed.transaction_count == 3
        assert refreshed.total_amount_cents == 150000
        assert refreshed.average_amount_cents == 50000
        assert refreshed.last_transaction_date == date(2024, 3, 1)
        assert refreshed.next_expected_date == date(2024, 4, 1)
        for txn in txns:
            assert (await _load(session_factory, txn)).recurring_group_id == group.id

    @pytest.mark.asyncio
    async def test_group_left_with_one_member_is_deactivated(self, pipeline, session_factory):
        first, second, third = await _monthly_group(pipeline, session_factory)
        group_id = (await _load(session_factory, third)).recurring_group_id

        await self._delete(session_factory, third)
        await self._refresh(session_factory, group_id)
        await self._delete(session_factory, second)
        refreshed = await self._refresh(session_factory, group_id)

        assert refreshed.is_active is False
        assert refreshed.transaction_count == 1
        assert await _active_groups(session_factory) == []
        remaining = await _load(session_factory, first)
        assert remaining.is_recurring is False
        assert remaining.recurring_group_id is None

    @pytest.mark.asyncio
    async def test_unknown_group(self, session_factory):
        async with session_factory() as session:
            assert await RecurringDetector(session).refresh_group(uuid4()) is None


class TestBackgroundDetection:
    @pytest.mark.asyncio
    async def test_pipeline_hand_off_creates_group(self, db_session, recurring_queue, session_factory):
        pipeline = TransactionPipeline(db_session, recurring_queue=recurring_queue)

        for when in ("2024-01-01", "2024-01-31", "2024-03-02"):
            await _add(pipeline, 499, when)
            await recurring_queue.join()

        groups = await _active_groups(session_factory)
        assert len(groups) == 1
        assert groups[0].merchant_normalized == "Netflix"
        assert groups[0].transaction_count == 3
        assert recurring_queue.running


class TestListActive:
    @pytest.mark.asyncio
    async def test_sorted_by_next_expected(self, pipeline, session_factory):
        await _monthly_group(pipeline, session_factory)
        for when in ("2024-02-05", "2024-02-12", "2024-02-19"):
            txn = await _add(pipeline, 199, when, merchant="SPOTIFY")
            await _detect(session_factory, txn)

        async with session_factory() as session:
            groups = await RecurringDetector(session).list_active(USER_ID)

        assert [g.merchant_normalized for g in groups] == ["Spotify", "Netflix"]
        assert groups[0].interval == "weekly"
