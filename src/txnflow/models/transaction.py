"""Transaction model: one cleaned, categorized, deduplicated record."""
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from txnflow.models.base import BaseModel


class Transaction(BaseModel):
    """A persisted transaction owned by a single user.

    Amounts are stored in the smallest currency unit (paise for INR).
    """

    __tablename__ = "transactions"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String(6), nullable=False, default="debit")
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    txn_date: Mapped[date] = mapped_column(Date, nullable=False)

    merchant_raw_text: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    merchant_normalized: Mapped[str | None] = mapped_column(String(255), nullable=True)
    merchant_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False, default="bank")
    account_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    category_method: Mapped[str] = mapped_column(String(30), nullable=False, default="default")
    overall_confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    duplicate_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_group_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("recurring_groups.id", ondelete="SET NULL"), nullable=True, index=True
    )

    user_corrected_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_corrected_merchant: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        # Storage-level idempotency key: a concurrent identical submission
        # fails here instead of creating a second row.
        UniqueConstraint("user_id", "duplicate_hash", name="uq_transactions_user_duplicate_hash"),
        Index("ix_transactions_user_id_txn_date", "user_id", "txn_date"),
        Index("ix_transactions_user_id_merchant_normalized", "user_id", "merchant_normalized"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, merchant={self.merchant_normalized}, "
            f"amount_cents={self.amount_cents}, direction={self.direction})>"
        )
