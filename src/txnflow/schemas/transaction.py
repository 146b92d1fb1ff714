"""Transaction request/response schemas."""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from txnflow.schemas.draft import from_minor_units


# Shared schemas


class MoneyMeta(BaseModel):
    """Metadata describing how monetary amounts are represented."""

    currency: str = Field(description="ISO currency code (e.g., INR)")
    minor_unit: int = Field(
        description="Number of decimal places for the currency (e.g., 2 for paise)"
    )


class PaginationMeta(BaseModel):
    """Pagination metadata for list endpoints."""

    page: int = Field(description="Current page number (1-indexed)")
    limit: int = Field(description="Items per page")
    total: int = Field(description="Total number of items")
    total_pages: int = Field(description="Total number of pages")


# Request schemas


class ManualTransactionRequest(BaseModel):
    """Manual entry as typed by a user."""

    amount: Decimal | str = Field(description="Amount in major units (e.g., 299 or '1,299.00')")
    type: str = Field(default="expense", description="expense/income or debit/credit")
    date: dt.datetime | dt.date | str | None = Field(None, description="When the transaction happened")
    merchant: str = ""
    description: str = ""
    note: str = ""
    accountType: str = "bank"


class TransactionCorrectionRequest(BaseModel):
    """User correction of a processed transaction."""

    category: str | None = Field(None, description="Corrected category (from the taxonomy)")
    merchant: str | None = Field(None, description="Corrected merchant display name")


# Response schemas


class TransactionResponse(BaseModel):
    """A persisted transaction."""

    id: UUID
    user_id: str
    source: str
    amount_cents: int = Field(description="Amount in minor units (paise)")
    direction: str
    occurred_at: datetime
    txn_date: date
    merchant_raw_text: str
    merchant_normalized: str | None
    merchant_confidence: float
    description: str
    note: str | None
    account_type: str
    account_last4: str | None
    bank_name: str | None
    reference_id: str | None
    category: str
    category_confidence: float
    category_method: str
    overall_confidence_score: float
    duplicate_hash: str
    is_recurring: bool
    recurring_group_id: UUID | None
    user_corrected_category: str | None
    user_corrected_merchant: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def amount(self) -> Decimal:
        return from_minor_units(self.amount_cents)


class ProcessResponse(BaseModel):
    """Outcome of a single pipeline call, as surfaced to HTTP callers."""

    message: str
    is_duplicate: bool
    transaction: TransactionResponse


class BatchResponse(BaseModel):
    """Tallies of a batch pipeline call."""

    processed: int
    duplicates: int
    errors: int
    transactions: list[TransactionResponse] = Field(default_factory=list)


class TransactionListResult(BaseModel):
    """Paginated list of transactions."""

    transactions: list[TransactionResponse]
    pagination: PaginationMeta
    money: MoneyMeta


class TransactionStats(BaseModel):
    """Aggregates over a user's transactions (amounts in minor units)."""

    total: int
    total_debit: int
    total_credit: int
    by_category: dict[str, int]
    by_source: dict[str, int]
    by_month: dict[str, int]
    money: MoneyMeta


class CorrectionResponse(BaseModel):
    """Result of applying a user correction."""

    message: str
    transaction: TransactionResponse


def error_body(error: dict[str, Any]) -> dict[str, Any]:
    """Standard error payload for a catalog entry."""
    return {
        "error_code": error["code"],
        "message": error["message"],
        "user_message": error["user_message"],
        "suggestion": error["suggestion"],
        "retry_allowed": error["retry_allowed"],
    }


class BatchRequest(BaseModel):
    """Several raw records from one source."""

    source: str = Field(description="manual, csv, sms, email or aa")
    records: list[dict[str, Any]]
