"""Recurring group response schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field

from txnflow.schemas.draft import from_minor_units


class RecurringGroupResponse(BaseModel):
    """A detected recurring payment."""

    id: UUID
    merchant_normalized: str
    category: str | None
    average_amount_cents: int
    amount_variance: float
    interval: str
    last_transaction_date: date
    next_expected_date: date
    transaction_count: int
    total_amount_cents: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def average_amount(self) -> Decimal:
        return from_minor_units(self.average_amount_cents)


class RecurringGroupListResult(BaseModel):
    """Active recurring groups for the calling user."""

    groups: list[RecurringGroupResponse]
