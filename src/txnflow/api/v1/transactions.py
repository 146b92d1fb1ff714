"""Transaction ingestion, query and correction endpoints."""

from datetime import date
from math import ceil
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.api.deps import get_correction_service, get_current_user_id, get_pipeline
from txnflow.config import settings
from txnflow.core.exceptions import TransactionNotFoundError
from txnflow.core.types import Direction, Source
from txnflow.db.session import get_db
from txnflow.repositories.transaction import TransactionFilters, TransactionRepository
from txnflow.schemas.transaction import (
    BatchRequest,
    BatchResponse,
    CorrectionResponse,
    ManualTransactionRequest,
    MoneyMeta,
    PaginationMeta,
    ProcessResponse,
    TransactionCorrectionRequest,
    TransactionListResult,
    TransactionResponse,
    TransactionStats,
)
from txnflow.services.corrections import CorrectionService
from txnflow.services.pipeline import ProcessResult, TransactionPipeline
from txnflow.services.recurring import RecurringDetector

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _money() -> MoneyMeta:
    return MoneyMeta(currency=settings.currency, minor_unit=settings.currency_minor_unit)


def _process_response(result: ProcessResult, response: Response) -> ProcessResponse:
    # Duplicates keep the success body shape so clients can show the existing row.
    response.status_code = status.HTTP_409_CONFLICT if result.is_duplicate else status.HTTP_201_CREATED
    return ProcessResponse(
        message=result.message,
        is_duplicate=result.is_duplicate,
        transaction=TransactionResponse.model_validate(result.transaction),
    )


@router.post(
    "",
    response_model=ProcessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a manual transaction",
    responses={
        201: {"description": "Transaction processed"},
        409: {"description": "Identical transaction already exists (returned in body)"},
        422: {"description": "Amount could not be parsed"},
    },
)
async def create_manual_transaction(
    payload: ManualTransactionRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    pipeline: TransactionPipeline = Depends(get_pipeline),
) -> ProcessResponse:
    """Run a manually entered transaction through the pipeline."""
    result = await pipeline.process(payload.model_dump(), user_id, Source.MANUAL)
    return _process_response(result, response)


@router.post(
    "/ingest/{source}",
    response_model=ProcessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest one raw record from a source",
    description="""
    Entry point for SMS/email forwarders, account-aggregator callbacks and
    other integrations. The body is the source's raw record shape.
    """,
)
async def ingest_record(
    source: str,
    response: Response,
    raw_record: Annotated[dict[str, Any], Body()],
    user_id: str = Depends(get_current_user_id),
    pipeline: TransactionPipeline = Depends(get_pipeline),
) -> ProcessResponse:
    result = await pipeline.process(raw_record, user_id, source)
    return _process_response(result, response)


@router.post(
    "/batch",
    response_model=BatchResponse,
    summary="Process several raw records from one source",
)
async def process_batch(
    payload: BatchRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: TransactionPipeline = Depends(get_pipeline),
) -> BatchResponse:
    """Rows that fail are counted in ``errors``; the rest are kept."""
    result = await pipeline.process_batch(payload.records, user_id, payload.source)
    return BatchResponse(
        processed=result.processed,
        duplicates=result.duplicates,
        errors=result.errors,
        transactions=[TransactionResponse.model_validate(t) for t in result.transactions],
    )


@router.get(
    "",
    response_model=TransactionListResult,
    summary="List transactions with filters",
    description="""
    ## Filters
    - **start_date**, **end_date**: Date range filter (inclusive)
    - **direction**: debit or credit
    - **category**: Transaction category
    - **source**: manual, csv, sms, email or aa
    - **search**: Merchant/description search (case-insensitive)

    Newest first, paginated.
    """,
)
async def list_transactions(
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="Items per page (1-100)")] = 20,
    start_date: Annotated[date | None, Query(description="Filter from date (inclusive)")] = None,
    end_date: Annotated[date | None, Query(description="Filter to date (inclusive)")] = None,
    direction: Annotated[Direction | None, Query(description="debit or credit")] = None,
    category: Annotated[str | None, Query(description="Filter by category")] = None,
    source: Annotated[Source | None, Query(description="Filter by source")] = None,
    search: Annotated[str | None, Query(description="Search merchant names")] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TransactionListResult:
    filters = TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        direction=direction.value if direction else None,
        category=category,
        source=source.value if source else None,
        merchant=search,
    )
    rows, total = await TransactionRepository(db).search(user_id, filters, page=page, limit=limit)
    return TransactionListResult(
        transactions=[TransactionResponse.model_validate(t) for t in rows],
        pagination=PaginationMeta(
            page=page, limit=limit, total=total, total_pages=ceil(total / limit) if total else 0
        ),
        money=_money(),
    )


@router.get(
    "/stats",
    response_model=TransactionStats,
    summary="Totals by direction, category, source and month",
)
async def transaction_stats(
    start_date: Annotated[date | None, Query(description="From date (inclusive)")] = None,
    end_date: Annotated[date | None, Query(description="To date (inclusive)")] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TransactionStats:
    stats = await TransactionRepository(db).stats(user_id, start_date, end_date)
    return TransactionStats(**stats, money=_money())


@router.get("/{transaction_id}", response_model=TransactionResponse, summary="Get one transaction")
async def get_transaction(
    transaction_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    transaction = await TransactionRepository(db).get_for_user(user_id, transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(transaction_id)
    return TransactionResponse.model_validate(transaction)


@router.patch(
    "/{transaction_id}",
    response_model=CorrectionResponse,
    summary="Correct merchant and/or category",
    description="""
    Corrections are ground truth (confidence 1.0) and are remembered for the
    calling user: future transactions from the same merchant text resolve to
    the corrected merchant and category.
    """,
    responses={
        400: {"description": "Invalid category or empty correction"},
        404: {"description": "Transaction not found"},
    },
)
async def correct_transaction(
    transaction_id: UUID,
    payload: TransactionCorrectionRequest,
    user_id: str = Depends(get_current_user_id),
    service: CorrectionService = Depends(get_correction_service),
) -> CorrectionResponse:
    transaction = await service.apply(
        user_id, transaction_id, category=payload.category, merchant=payload.merchant
    )
    return CorrectionResponse(
        message="Transaction updated", transaction=TransactionResponse.model_validate(transaction)
    )


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
async def delete_transaction(
    transaction_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    repo = TransactionRepository(db)
    transaction = await repo.get_for_user(user_id, transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(transaction_id)
    group_id = transaction.recurring_group_id

    await repo.delete_for_user(user_id, transaction_id)
    if group_id is not None:
        await RecurringDetector(db).refresh_group(group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
