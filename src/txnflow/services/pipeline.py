"""Transaction processing pipeline.

This module orchestrates turning one raw record into one stored
transaction:
1. Normalize the source-specific shape into a draft
2. Resolve the merchant (dictionary, fuzzy, user aliases)
3. Categorize (user overrides, merchant rules, keywords, defaults)
4. Score overall confidence
5. Hash for duplicate detection and skip known transactions
6. Persist
7. Queue recurring detection
"""

import hashlib
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.categorization import categorize
from txnflow.config import settings
from txnflow.core.exceptions import (
    BatchInputError,
    InvalidRecordError,
    PipelineError,
    TransactionProcessingError,
    UnsupportedSourceError,
)
from txnflow.core.types import Source
from txnflow.merchants import DEFAULT_DICTIONARY, MerchantDictionary, resolve
from txnflow.models.transaction import Transaction
from txnflow.normalization import normalize
from txnflow.repositories.overrides import (
    MerchantAliasOverrideRepository,
    MerchantCategoryOverrideRepository,
)
from txnflow.repositories.transaction import TransactionRepository
from txnflow.schemas.draft import CENT, TransactionDraft
from txnflow.services.background import RecurringDetectionQueue, RecurringJob

logger = logging.getLogger(__name__)

# Prior trust in each source's data quality.
SOURCE_CONFIDENCE: dict[Source, float] = {
    Source.MANUAL: 1.0,
    Source.CSV: 0.9,
    Source.AA: 0.95,
    Source.SMS: 0.8,
    Source.EMAIL: 0.7,
}

# Draft issues that make a record unusable.
FATAL_ISSUES = {"amount", "record"}


def compute_confidence_score(
    merchant_confidence: float,
    category_confidence: float,
    source: Source | str,
    has_reference: bool,
) -> float:
    """Blend step confidences into one score in [0, 1], two decimals.

    Starts at 0.5 and is averaged with each available signal in turn;
    a zero merchant confidence means "no merchant" and is skipped. A
    reference id adds 0.1.

    Example:
        >>> compute_confidence_score(1.0, 0.9, Source.MANUAL, False)
        0.91
    """
    score = 0.5
    if merchant_confidence:
        score = (score + merchant_confidence) / 2
    if category_confidence:
        score = (score + category_confidence) / 2
    score = (score + SOURCE_CONFIDENCE.get(Source(source), 0.5)) / 2
    if has_reference:
        score = min(score + 0.1, 1.0)
    score = max(0.0, min(score, 1.0))
    return float(Decimal(str(score)).quantize(CENT, rounding=ROUND_HALF_UP))


def compute_duplicate_hash(user_id: str, draft: TransactionDraft, merchant_normalized: str | None) -> str:
    """Content hash identifying "the same transaction" across sources."""
    parts = [
        str(user_id),
        f"{draft.amount.quantize(CENT, rounding=ROUND_HALF_UP)}",
        draft.direction.value,
        draft.txn_date.isoformat(),
        merchant_normalized or draft.merchant_raw_text,
        draft.reference_id or "",
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


@dataclass
class ProcessResult:
    transaction: Transaction
    is_duplicate: bool
    message: str


@dataclass
class BatchResult:
    processed: int = 0
    duplicates: int = 0
    errors: int = 0
    transactions: list[Transaction] = field(default_factory=list)


def _source(source: Source | str) -> Source:
    try:
        return Source(source)
    except ValueError as e:
        raise UnsupportedSourceError(str(source)) from e


class TransactionPipeline:
    """Runs raw records through normalization, enrichment and storage.

    One instance per request or job; per-user override overlays are cached
    on the instance.
    """

    def __init__(
        self,
        db: AsyncSession,
        recurring_queue: RecurringDetectionQueue | None = None,
        dictionary: MerchantDictionary | None = None,
    ):
        """Initialize the pipeline.

        Args:
            db: Database session for persistence
            recurring_queue: Where to hand off recurring detection; when
                None, detection is skipped
            dictionary: Base merchant dictionary (defaults to the global one)
        """
        self.db = db
        self.recurring_queue = recurring_queue
        self.dictionary = dictionary or DEFAULT_DICTIONARY
        self.transaction_repo = TransactionRepository(db)
        self.alias_repo = MerchantAliasOverrideRepository(db)
        self.category_override_repo = MerchantCategoryOverrideRepository(db)
        self._dictionaries: dict[str, MerchantDictionary] = {}
        self._category_overrides: dict[str, dict[str, str]] = {}

    async def process(
        self, raw_record: Mapping[str, Any] | None, user_id: str, source: Source | str
    ) -> ProcessResult:
        """Process one raw record.

        Args:
            raw_record: Source-specific raw shape
            user_id: Owner of the transaction
            source: Source tag (manual/csv/sms/email/aa)

        Returns:
            ProcessResult; ``is_duplicate`` is True when an identical
            transaction already existed and nothing was written

        Raises:
            UnsupportedSourceError: Unknown source tag
            InvalidRecordError: Record has no usable amount
            TransactionProcessingError: Anything else went wrong
        """
        source = _source(source)
        draft = normalize(raw_record, source)
        fatal = FATAL_ISSUES.intersection(draft.issues)
        if fatal:
            logger.info(
                "Rejected unusable record",
                extra={"source": source.value, "issues": sorted(fatal)},
            )
            raise InvalidRecordError({"source": source.value, "issues": sorted(fatal)})

        try:
            result = await self._enrich_and_store(draft, user_id)
        except PipelineError:
            await self.db.rollback()
            raise
        except Exception as e:
            if settings.debug:
                logger.exception("Transaction processing failed", extra={"error_type": type(e).__name__})
            else:
                logger.error("Transaction processing failed", extra={"error_type": type(e).__name__})
            await self.db.rollback()
            raise TransactionProcessingError(e) from e

        if not result.is_duplicate:
            self._hand_off(result.transaction)
        return result

    async def process_batch(
        self, raw_records: Iterable[Mapping[str, Any]] | None, user_id: str, source: Source | str
    ) -> BatchResult:
        """Process records one by one; a failing row is counted, not raised.

        Raises:
            BatchInputError: Input is empty or not a sequence of records
            UnsupportedSourceError: Unknown source tag
        """
        if raw_records is None or isinstance(raw_records, (str, bytes, Mapping)):
            raise BatchInputError({"reason": "not_iterable"})
        try:
            records = list(raw_records)
        except TypeError as e:
            raise BatchInputError({"reason": "not_iterable"}) from e
        if not records:
            raise BatchInputError({"reason": "empty"})
        source = _source(source)

        result = BatchResult()
        for index, raw in enumerate(records):
            try:
                outcome = await self.process(raw, user_id, source)
            except PipelineError as e:
                result.errors += 1
                logger.warning(
                    "Batch row failed",
                    extra={"row": index, "source": source.value, "error_code": e.error_code},
                )
                continue
            if outcome.is_duplicate:
                result.duplicates += 1
            else:
                result.processed += 1
                result.transactions.append(outcome.transaction)

        logger.info(
            "Batch processed",
            extra={
                "source": source.value,
                "processed": result.processed,
                "duplicates": result.duplicates,
                "errors": result.errors,
            },
        )
        return result

    async def _enrich_and_store(self, draft: TransactionDraft, user_id: str) -> ProcessResult:
        dictionary = await self._merchant_dictionary(user_id)
        merchant = resolve(draft.merchant_raw_text or draft.description, dictionary)
        category = categorize(
            merchant.normalized,
            draft.amount,
            draft.direction,
            draft.description,
            overrides=await self._category_overrides_for(user_id),
        )
        score = compute_confidence_score(
            merchant.confidence, category.confidence, draft.source, bool(draft.reference_id)
        )
        duplicate_hash = compute_duplicate_hash(user_id, draft, merchant.normalized)

        existing = await self.transaction_repo.get_by_hash(user_id, duplicate_hash)
        if existing is not None:
            logger.info("Duplicate transaction skipped", extra={"transaction_id": str(existing.id)})
            return await self._finish(ProcessResult(existing, True, "Duplicate transaction detected"))

        transaction = Transaction(
            user_id=user_id,
            source=draft.source.value,
            amount_cents=draft.amount_cents,
            direction=draft.direction.value,
            occurred_at=draft.occurred_at,
            txn_date=draft.txn_date,
            merchant_raw_text=draft.merchant_raw_text,
            merchant_normalized=merchant.normalized or None,
            merchant_confidence=merchant.confidence,
            description=draft.description,
            note=draft.note,
            account_type=draft.account_type.value,
            account_last4=draft.account_last4,
            bank_name=draft.bank_name,
            reference_id=draft.reference_id,
            category=category.category,
            category_confidence=category.confidence,
            category_method=category.method,
            overall_confidence_score=score,
            duplicate_hash=duplicate_hash,
            is_recurring=False,
            recurring_group_id=None,
            user_corrected_category=None,
            user_corrected_merchant=None,
        )
        try:
            transaction = await self.transaction_repo.create(transaction, commit=False)
        except IntegrityError:
            # Lost a race against an identical submission.
            await self.db.rollback()
            existing = await self.transaction_repo.get_by_hash(user_id, duplicate_hash)
            if existing is None:
                raise
            logger.info("Duplicate transaction detected on insert", extra={"transaction_id": str(existing.id)})
            return await self._finish(ProcessResult(existing, True, "Duplicate transaction detected"))

        logger.info(
            "Transaction processed",
            extra={
                "transaction_id": str(transaction.id),
                "source": transaction.source,
                "category": transaction.category,
                "confidence": transaction.overall_confidence_score,
            },
        )
        return await self._finish(ProcessResult(transaction, False, "Transaction processed successfully"))

    async def _finish(self, result: ProcessResult) -> ProcessResult:
        # End the unit of work and detach the row so a later rollback on this
        # session cannot expire it.
        await self.db.commit()
        self.db.expunge(result.transaction)
        return result

    def _hand_off(self, transaction: Transaction) -> None:
        if self.recurring_queue is None:
            return
        self.recurring_queue.submit(RecurringJob(user_id=transaction.user_id, transaction_id=transaction.id))

    async def _merchant_dictionary(self, user_id: str) -> MerchantDictionary:
        if user_id not in self._dictionaries:
            aliases = await self.alias_repo.get_map(user_id)
            self._dictionaries[user_id] = self.dictionary.with_aliases(aliases)
        return self._dictionaries[user_id]

    async def _category_overrides_for(self, user_id: str) -> dict[str, str]:
        if user_id not in self._category_overrides:
            self._category_overrides[user_id] = await self.category_override_repo.get_map(user_id)
        return self._category_overrides[user_id]
