"""CSV statement import.

Bank CSV exports have no common layout, so columns are detected from the
header row. Each data row is mapped to the ``csv`` raw shape and run
through the pipeline. A malformed row is counted as an error; the import
itself only fails when the file cannot be read at all.
"""

import csv
import io
import logging
import re

from txnflow.core.exceptions import BatchInputError
from txnflow.core.types import Source
from txnflow.schemas.imports import ColumnMapping, CsvImportResult, CsvPreviewResult
from txnflow.schemas.transaction import TransactionResponse
from txnflow.services.pipeline import TransactionPipeline

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10

# Detection order matters: a header is claimed by the first field that
# matches it, so "Debit Amount" becomes the debit column and "Dr/Cr" the
# type column before the generic amount/debit/credit patterns run.
COLUMN_PATTERNS: list[tuple[str, list[str]]] = [
    ("date", ["date", "transaction date", "txn date", "value date", "posting date"]),
    ("description", ["description", "narration", "remarks", "particulars", "details", "merchant"]),
    ("type", ["type", "dr cr", "cr dr"]),
    ("debit", ["debit", "withdrawal", "dr", "paid"]),
    ("credit", ["credit", "deposit", "cr", "received"]),
    ("amount", ["amount", "transaction amount", "txn amount"]),
    ("reference", ["reference", "ref", "ref no", "transaction id", "txn id"]),
    ("account", ["account", "account number", "card", "account no"]),
]


def _header_words(header: str) -> str:
    return " " + re.sub(r"[^a-z0-9]+", " ", (header or "").lower()).strip() + " "


def detect_columns(headers: list[str]) -> ColumnMapping:
    """Guess which header holds each canonical field (whole-word matches).

    Example:
        >>> detect_columns(["Txn Date", "Narration", "Withdrawal Amt", "Deposit Amt"]).debit
        'Withdrawal Amt'
    """
    words = {header: _header_words(header) for header in headers}
    claimed: set[str] = set()
    detected: dict[str, str | None] = {}
    for field, patterns in COLUMN_PATTERNS:
        detected[field] = None
        for pattern in patterns:
            needle = f" {pattern} "
            match = next((h for h in headers if h not in claimed and needle in words[h]), None)
            if match is not None:
                detected[field] = match
                claimed.add(match)
                break
    return ColumnMapping(**detected)


def parse_csv(content: bytes) -> list[dict[str, str]]:
    """Read CSV bytes into row dicts keyed by (stripped) header.

    Raises:
        ValueError: If the content is not UTF-8 text or not valid CSV
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValueError("CSV file is not UTF-8 encoded") from e

    try:
        reader = csv.DictReader(io.StringIO(text))
        rows = []
        for row in reader:
            cleaned = {
                key.strip(): (value.strip() if isinstance(value, str) else "")
                for key, value in row.items()
                if key is not None
            }
            if any(cleaned.values()):
                rows.append(cleaned)
    except csv.Error as e:
        raise ValueError(f"Malformed CSV: {e}") from e
    return rows


def _headers(rows: list[dict[str, str]]) -> list[str]:
    return list(rows[0].keys()) if rows else []


def preview_csv(content: bytes) -> CsvPreviewResult:
    """Headers, first rows and detected columns; never raises."""
    try:
        rows = parse_csv(content)
    except ValueError as e:
        logger.warning("CSV preview failed", extra={"error_type": type(e).__name__})
        return CsvPreviewResult(
            headers=[], rows=[], total_rows=0, detected_columns=ColumnMapping(), error=str(e)
        )

    headers = _headers(rows)
    return CsvPreviewResult(
        headers=headers,
        rows=rows[:PREVIEW_ROWS],
        total_rows=len(rows),
        detected_columns=detect_columns(headers),
    )


def row_to_record(row: dict[str, str], mapping: ColumnMapping) -> dict[str, str | None]:
    """Map one CSV row onto the csv raw shape the normalizer reads."""

    def value(column: str | None) -> str | None:
        if not column:
            return None
        return (row.get(column) or "").strip() or None

    return {
        "date": value(mapping.date),
        "amount": value(mapping.amount),
        "debit": value(mapping.debit),
        "credit": value(mapping.credit),
        "type": value(mapping.type),
        "description": value(mapping.description) or "",
        "reference": value(mapping.reference),
        "account": value(mapping.account),
    }


async def import_csv(
    pipeline: TransactionPipeline,
    content: bytes,
    user_id: str,
    column_mapping: ColumnMapping | None = None,
) -> CsvImportResult:
    """Import every row of a CSV statement for ``user_id``.

    Args:
        pipeline: Pipeline bound to the caller's session
        content: Raw file bytes
        user_id: Owner of the imported transactions
        column_mapping: Explicit header mapping; detected when omitted

    Returns:
        CsvImportResult with batch tallies (``success=False`` for an empty
        or unreadable file)
    """
    try:
        rows = parse_csv(content)
    except ValueError as e:
        logger.warning("CSV import failed", extra={"error_type": type(e).__name__})
        return CsvImportResult(success=False, message=f"Import failed: {e}")

    if not rows:
        return CsvImportResult(success=False, message="CSV file is empty")

    mapping = column_mapping or detect_columns(_headers(rows))
    records = []
    skipped = 0
    for row in rows:
        record = row_to_record(row, mapping)
        if not record["date"] and not (record["amount"] or record["debit"] or record["credit"]):
            skipped += 1
            continue
        records.append(record)

    try:
        batch = await pipeline.process_batch(records, user_id, Source.CSV)
    except BatchInputError:
        return CsvImportResult(
            success=False, message="CSV file has no transaction rows", skipped=skipped
        )

    logger.info(
        "CSV import finished",
        extra={
            "rows": len(rows),
            "processed": batch.processed,
            "duplicates": batch.duplicates,
            "errors": batch.errors,
            "skipped": skipped,
        },
    )
    return CsvImportResult(
        success=True,
        message=f"Imported {batch.processed} transactions",
        processed=batch.processed,
        duplicates=batch.duplicates,
        errors=batch.errors,
        skipped=skipped,
        transactions=[TransactionResponse.model_validate(t) for t in batch.transactions],
    )
