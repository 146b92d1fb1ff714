"""Canonical in-flight transaction shape produced by normalization.

A draft is never persisted directly. It carries everything the normalizer
could recover from a raw record; fields it could not interpret fall back to
safe defaults and are named in ``issues``.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field, field_validator

from txnflow.core.types import AccountType, Direction, Source

CENT = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to paise/cents (1234.56 -> 123456)."""
    return int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def from_minor_units(amount_cents: int) -> Decimal:
    """Convert paise/cents back to a two-place decimal amount."""
    return (Decimal(amount_cents) / 100).quantize(CENT)


class TransactionDraft(BaseModel):
    """Normalized, not-yet-persisted transaction."""

    source: Source
    amount: Decimal = Field(default=Decimal("0"), ge=0, description="Absolute amount in major units")
    direction: Direction = Field(default=Direction.DEBIT)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    merchant_raw_text: str = ""
    description: str = ""
    note: str | None = None
    account_type: AccountType = AccountType.BANK
    reference_id: str | None = None
    account_last4: str | None = None
    bank_name: str | None = None
    issues: list[str] = Field(default_factory=list)

    @field_validator("occurred_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are interpreted as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def amount_cents(self) -> int:
        return to_minor_units(self.amount)

    @property
    def txn_date(self) -> date:
        """Calendar day of the timestamp in its own UTC offset."""
        return self.occurred_at.date()
