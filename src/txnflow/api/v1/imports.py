"""CSV statement import endpoints."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError

from txnflow.api.deps import get_current_user_id, get_pipeline
from txnflow.config import settings
from txnflow.core.exceptions import FileTooLargeError, PipelineError, UnsupportedFileTypeError
from txnflow.schemas.imports import ColumnMapping, CsvImportResult, CsvPreviewResult
from txnflow.services.csv_import import import_csv, preview_csv
from txnflow.services.pipeline import TransactionPipeline

router = APIRouter(prefix="/imports", tags=["imports"])

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel", "text/plain"}


async def _read_csv_upload(file: UploadFile) -> bytes:
    """Validate type and size of an uploaded CSV and return its bytes."""
    filename = (file.filename or "").lower()
    if not filename.endswith(".csv") and file.content_type not in CSV_CONTENT_TYPES:
        raise UnsupportedFileTypeError(file.filename)

    limit = settings.csv_max_size_mb * 1024 * 1024
    content = await file.read()
    if len(content) > limit:
        raise FileTooLargeError(len(content), limit)
    return content


@router.post(
    "/csv/preview",
    response_model=CsvPreviewResult,
    summary="Preview a CSV statement",
    description="First rows of the file plus the columns detected for date, amount, etc.",
)
async def preview_csv_upload(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
) -> CsvPreviewResult:
    return preview_csv(await _read_csv_upload(file))


@router.post(
    "/csv",
    response_model=CsvImportResult,
    summary="Import a CSV statement",
    description="""
    Imports every row of the file. Columns are detected from the header row
    unless **column_mapping** (JSON object of field -> header) is provided.
    """,
)
async def import_csv_upload(
    file: UploadFile = File(...),
    column_mapping: str | None = Form(None),
    user_id: str = Depends(get_current_user_id),
    pipeline: TransactionPipeline = Depends(get_pipeline),
) -> CsvImportResult:
    mapping = None
    if column_mapping:
        try:
            mapping = ColumnMapping.model_validate_json(column_mapping)
        except ValidationError as e:
            raise PipelineError("VAL_003", {"field": "column_mapping"}, http_status=400) from e
    content = await _read_csv_upload(file)
    return await import_csv(pipeline, content, user_id, column_mapping=mapping)
