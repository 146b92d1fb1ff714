"""Integration tests for the transaction pipeline."""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.core.exceptions import (
    BatchInputError,
    InvalidRecordError,
    TransactionProcessingError,
    UnsupportedSourceError,
)
from txnflow.core.types import Source
from txnflow.repositories.overrides import MerchantAliasOverrideRepository
from txnflow.repositories.transaction import TransactionRepository
from txnflow.services.pipeline import TransactionPipeline

USER_ID = "user-123"
OTHER_USER_ID = "user-456"


def _manual(amount, merchant="SWIGGY", when="2024-05-01", kind="expense"):
    return {"amount": amount, "type": kind, "merchant": merchant, "date": when}


class TestProcess:
    """Single-record processing end to end."""

    @pytest.mark.asyncio
    async def test_manual_swiggy(self, pipeline: TransactionPipeline):
        """A known merchant is resolved, categorized and scored."""
        result = await pipeline.process(_manual(299), USER_ID, Source.MANUAL)

        txn = result.transaction
        assert result.is_duplicate is False
        assert result.message == "Transaction processed successfully"
        assert txn.user_id == USER_ID
        assert txn.source == "manual"
        assert txn.amount_cents == 29900
        assert txn.direction == "debit"
        assert txn.txn_date == date(2024, 5, 1)
        assert txn.merchant_raw_text == "SWIGGY"
        assert txn.merchant_normalized == "Swiggy"
        assert txn.merchant_confidence == 1.0
        assert txn.category == "Food & Dining"
        assert txn.category_confidence == 0.9
        assert txn.category_method == "merchant_match"
        assert txn.overall_confidence_score == 0.91
        assert len(txn.duplicate_hash) == 64
        assert txn.is_recurring is False

    @pytest.mark.asyncio
    async def test_same_record_twice_is_duplicate(self, pipeline: TransactionPipeline, db_session: AsyncSession):
        first = await pipeline.process(_manual(299), USER_ID, "manual")
        second = await pipeline.process(_manual(299), USER_ID, "manual")

        assert second.is_duplicate is True
        assert second.message == "Duplicate transaction detected"
        assert second.transaction.id == first.transaction.id
        assert await TransactionRepository(db_session).count(user_id=USER_ID) == 1

    @pytest.mark.asyncio
    async def test_cross_source_duplicate(self, pipeline: TransactionPipeline, db_session: AsyncSession):
        """The same payment seen by SMS and in a statement is stored once."""
        sms = await pipeline.process(
            {
                "text": "Rs.450.00 debited from HDFC Bank a/c XX1234 at SWIGGY on 01-05-2024",
                "timestamp": "2024-05-01T19:30:00+05:30",
            },
            USER_ID,
            Source.SMS,
        )
        csv_row = await pipeline.process(
            {"date": "01/05/2024", "description": "UPI-SWIGGY", "debit": "450.00"},
            USER_ID,
            Source.CSV,
        )

        assert sms.is_duplicate is False
        assert csv_row.is_duplicate is True
        assert csv_row.transaction.id == sms.transaction.id
        assert csv_row.transaction.source == "sms"
        assert await TransactionRepository(db_session).count(user_id=USER_ID) == 1

    @pytest.mark.asyncio
    async def test_duplicates_are_per_user(self, pipeline: TransactionPipeline):
        mine = await pipeline.process(_manual(299), USER_ID, "manual")
        theirs = await pipeline.process(_manual(299), OTHER_USER_ID, "manual")

        assert theirs.is_duplicate is False
        assert theirs.transaction.id != mine.transaction.id
        assert theirs.transaction.duplicate_hash != mine.transaction.duplicate_hash

    @pytest.mark.asyncio
    async def test_invalid_amount_is_rejected(self, pipeline: TransactionPipeline, db_session: AsyncSession):
        with pytest.raises(InvalidRecordError) as exc_info:
            await pipeline.process(_manual("abc"), USER_ID, "manual")

        assert exc_info.value.error_code == "VAL_001"
        assert exc_info.value.details["issues"] == ["amount"]
        assert await TransactionRepository(db_session).count(user_id=USER_ID) == 0

    @pytest.mark.asyncio
    async def test_unsupported_source(self, pipeline: TransactionPipeline):
        with pytest.raises(UnsupportedSourceError) as exc_info:
            await pipeline.process(_manual(10), USER_ID, "fax")

        assert exc_info.value.error_code == "VAL_002"

    @pytest.mark.asyncio
    async def test_unparseable_date_is_not_fatal(self, pipeline: TransactionPipeline):
        result = await pipeline.process(_manual(50, when="not a date"), USER_ID, "manual")

        assert result.is_duplicate is False
        assert result.transaction.txn_date == datetime.now(timezone.utc).date()

    @pytest.mark.asyncio
    async def test_unknown_merchant_keeps_cleaned_text(self, pipeline: TransactionPipeline):
        result = await pipeline.process(_manual(75, merchant="qwxz-9981"), USER_ID, "manual")

        txn = result.transaction
        assert txn.merchant_normalized == "QWXZ 9981"
        assert txn.merchant_confidence == 0.3
        assert txn.category == "Others"
        assert txn.category_method == "default"

    @pytest.mark.asyncio
    async def test_confidence_scores_in_range(self, pipeline: TransactionPipeline):
        records = [
            ({"text": "INR 5,000.00 credited to your a/c XX9876 on 02-05-24. Ref No 123456789012"}, "sms"),
            ({"subject": "Alert", "body": "spent Rs 1,250.00 at AMAZON"}, "email"),
            ({"amount": 1500, "type": "DEBIT", "narration": "NETFLIX", "txnId": "AA1"}, "aa"),
            (_manual(10, merchant=""), "manual"),
        ]
        for raw, source in records:
            result = await pipeline.process(raw, USER_ID, source)
            assert 0.0 <= result.transaction.overall_confidence_score <= 1.0

    @pytest.mark.asyncio
    async def test_learned_alias_is_applied(self, pipeline: TransactionPipeline, db_session: AsyncSession):
        await MerchantAliasOverrideRepository(db_session).upsert(USER_ID, "MY GYM CO", "Cult Fit")
        await db_session.commit()

        result = await pipeline.process(_manual(1200, merchant="my gym co"), USER_ID, "manual")

        assert result.transaction.merchant_normalized == "Cult Fit"
        assert result.transaction.merchant_confidence == 1.0

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_wrapped(self, pipeline: TransactionPipeline, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline.transaction_repo, "get_by_hash", broken)

        with pytest.raises(TransactionProcessingError) as exc_info:
            await pipeline.process(_manual(299), USER_ID, "manual")

        assert str(exc_info.value) == "transaction processing failed: boom"
        assert exc_info.value.error_code == "PIPE_001"
        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_hands_off_to_queue(self, db_session: AsyncSession):
        class RecordingQueue:
            def __init__(self):
                self.jobs = []

            def submit(self, job):
                self.jobs.append(job)
                return True

        queue = RecordingQueue()
        pipeline = TransactionPipeline(db_session, recurring_queue=queue)

        first = await pipeline.process(_manual(299), USER_ID, "manual")
        await pipeline.process(_manual(299), USER_ID, "manual")

        assert len(queue.jobs) == 1
        assert queue.jobs[0].transaction_id == first.transaction.id
        assert queue.jobs[0].user_id == USER_ID


class TestProcessBatch:
    @pytest.mark.asyncio
    async def test_bad_row_is_counted(self, pipeline: TransactionPipeline, db_session: AsyncSession):
        """One bad row in ten does not stop the other nine."""
        records = [_manual(100 + i, merchant=f"SHOP {i}") for i in range(10)]
        records[3]["amount"] = "abc"

        result = await pipeline.process_batch(records, USER_ID, "manual")

        assert result.processed == 9
        assert result.errors == 1
        assert result.duplicates == 0
        assert len(result.transactions) == 9
        assert await TransactionRepository(db_session).count(user_id=USER_ID) == 9

    @pytest.mark.asyncio
    async def test_duplicates_within_batch(self, pipeline: TransactionPipeline):
        result = await pipeline.process_batch([_manual(299), _manual(299), _manual(499)], USER_ID, "manual")

        assert result.processed == 2
        assert result.duplicates == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("records", [[], None, "not records", {"amount": 1}, 42])
    async def test_invalid_batch_input(self, pipeline: TransactionPipeline, records):
        with pytest.raises(BatchInputError) as exc_info:
            await pipeline.process_batch(records, USER_ID, "manual")

        assert exc_info.value.error_code == "BATCH_001"

    @pytest.mark.asyncio
    async def test_unsupported_source_fails_whole_batch(self, pipeline: TransactionPipeline):
        with pytest.raises(UnsupportedSourceError):
            await pipeline.process_batch([_manual(1)], USER_ID, "fax")

    @pytest.mark.asyncio
    async def test_generator_input(self, pipeline: TransactionPipeline):
        result = await pipeline.process_batch((_manual(i + 1) for i in range(3)), USER_ID, "manual")

        assert result.processed == 3
