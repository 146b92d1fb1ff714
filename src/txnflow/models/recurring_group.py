"""Recurring group model: a detected repeating-payment pattern."""
from datetime import date

from sqlalchemy import BigInteger, Boolean, Date, Float, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from txnflow.models.base import BaseModel


class RecurringGroup(BaseModel):
    """Recurring payments to one merchant for one user."""

    __tablename__ = "recurring_groups"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    merchant_normalized: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    average_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount_variance: Mapped[float] = mapped_column(Float, nullable=False, default=0.1)
    interval: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    last_transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_expected_date: Mapped[date] = mapped_column(Date, nullable=False)

    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        # At most one active group per (user, merchant).
        Index(
            "uq_recurring_groups_active_user_merchant",
            "user_id",
            "merchant_normalized",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_recurring_groups_user_id_is_active", "user_id", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<RecurringGroup(id={self.id}, merchant={self.merchant_normalized}, "
            f"interval={self.interval}, count={self.transaction_count})>"
        )
