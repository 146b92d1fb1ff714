"""User corrections of processed transactions.

A correction is ground truth: the corrected fields get confidence 1.0 and
the correction is remembered as a per-user overlay so future transactions
from the same merchant resolve and categorize the corrected way.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.categorization import CATEGORIES, category_override_key
from txnflow.core.exceptions import EmptyCorrectionError, InvalidCategoryError, TransactionNotFoundError
from txnflow.merchants import clean_merchant_text
from txnflow.models.transaction import Transaction
from txnflow.repositories.overrides import (
    MerchantAliasOverrideRepository,
    MerchantCategoryOverrideRepository,
)
from txnflow.repositories.transaction import TransactionRepository

logger = logging.getLogger(__name__)

_CATEGORY_LOOKUP = {category.lower(): category for category in CATEGORIES}


def canonical_category(category: str) -> str:
    """Taxonomy spelling of ``category`` (case-insensitive).

    Raises:
        InvalidCategoryError: If it is not in the taxonomy
    """
    canonical = _CATEGORY_LOOKUP.get((category or "").strip().lower())
    if canonical is None:
        raise InvalidCategoryError(category)
    return canonical


class CorrectionService:
    """Applies user corrections and records the matching overlays."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.transaction_repo = TransactionRepository(db)
        self.alias_repo = MerchantAliasOverrideRepository(db)
        self.category_override_repo = MerchantCategoryOverrideRepository(db)

    async def apply(
        self,
        user_id: str,
        transaction_id: UUID,
        category: str | None = None,
        merchant: str | None = None,
    ) -> Transaction:
        """Correct a transaction's merchant and/or category.

        Merchant is applied first so a category correction in the same call
        is keyed by the corrected merchant. Other uncorrected transactions of
        that merchant are re-categorized too.

        Raises:
            EmptyCorrectionError: Neither field given
            InvalidCategoryError: Category outside the taxonomy
            TransactionNotFoundError: No such transaction for this user
        """
        merchant = (merchant or "").strip() or None
        category = (category or "").strip() or None
        if merchant is None and category is None:
            raise EmptyCorrectionError()
        if category is not None:
            category = canonical_category(category)

        transaction = await self.transaction_repo.get_for_user(user_id, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)

        try:
            if merchant is not None:
                await self._correct_merchant(transaction, merchant)
            if category is not None:
                await self._correct_category(transaction, category)
            transaction.overall_confidence_score = 1.0
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(transaction)
        logger.info(
            "Transaction corrected",
            extra={
                "transaction_id": str(transaction.id),
                "merchant_corrected": merchant is not None,
                "category_corrected": category is not None,
            },
        )
        return transaction

    async def _correct_merchant(self, transaction: Transaction, merchant: str) -> None:
        transaction.user_corrected_merchant = merchant
        transaction.merchant_normalized = merchant
        transaction.merchant_confidence = 1.0

        alias_key = clean_merchant_text(transaction.merchant_raw_text or transaction.description)
        if alias_key:
            await self.alias_repo.upsert(transaction.user_id, alias_key, merchant)

    async def _correct_category(self, transaction: Transaction, category: str) -> None:
        transaction.user_corrected_category = category
        transaction.category = category
        transaction.category_confidence = 1.0
        transaction.category_method = "user_correction"

        merchant_key = category_override_key(transaction.merchant_normalized)
        if not merchant_key:
            return
        await self.category_override_repo.upsert(transaction.user_id, merchant_key, category)
        await self.db.flush()
        updated = await self.transaction_repo.update_category_for_merchant(
            transaction.user_id, merchant_key, category
        )
        logger.info("Category override backfilled", extra={"updated_transactions_count": updated})
