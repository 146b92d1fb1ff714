"""CSV import request/response schemas."""

from pydantic import BaseModel, Field

from txnflow.schemas.transaction import TransactionResponse


class ColumnMapping(BaseModel):
    """Header names chosen for each canonical CSV field (None when absent)."""

    date: str | None = None
    description: str | None = None
    amount: str | None = None
    debit: str | None = None
    credit: str | None = None
    type: str | None = None
    reference: str | None = None
    account: str | None = None


class CsvPreviewResult(BaseModel):
    """First rows of an uploaded CSV with the detected column mapping."""

    headers: list[str]
    rows: list[dict[str, str | None]]
    total_rows: int
    detected_columns: ColumnMapping
    error: str | None = None


class CsvImportResult(BaseModel):
    """Outcome of importing a CSV statement."""

    success: bool
    message: str
    processed: int = 0
    duplicates: int = 0
    errors: int = 0
    skipped: int = Field(0, description="Rows with neither a date nor an amount")
    transactions: list[TransactionResponse] = Field(default_factory=list)
