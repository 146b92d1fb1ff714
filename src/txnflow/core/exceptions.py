"""Custom exception classes for transaction processing.

Only hard failures are exceptions. Low-confidence outcomes (unknown
merchant, unmatched category, unparseable date, no recurring pattern)
degrade to documented defaults and never raise.
"""

from typing import Any


class PipelineError(Exception):
    """Base exception for all transaction pipeline errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "PIPE_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int = 500,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status
        super().__init__(error_code)


class InvalidRecordError(PipelineError):
    """Raised when a raw record defeats normalization entirely (VAL_001)."""

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__("VAL_001", details, http_status=422)


class UnsupportedSourceError(PipelineError):
    """Raised for a source tag outside manual/csv/sms/email/aa (VAL_002)."""

    def __init__(self, source: str):
        super().__init__("VAL_002", {"source": source}, http_status=400)


class BatchInputError(PipelineError):
    """Raised when a batch is empty or cannot be iterated (BATCH_001)."""

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__("BATCH_001", details, http_status=400)


class TransactionProcessingError(PipelineError):
    """Single wrapped failure for one record's processing (PIPE_001)."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__("PIPE_001", {"error_type": type(cause).__name__})

    def __str__(self) -> str:
        return f"transaction processing failed: {self.cause}"


class TransactionNotFoundError(PipelineError):
    """Raised when a transaction does not exist for the calling user."""

    def __init__(self, transaction_id: Any):
        super().__init__("API_006", {"transaction_id": str(transaction_id)}, http_status=404)


class InvalidCategoryError(PipelineError):
    """Raised when a correction names a category outside the taxonomy."""

    def __init__(self, category: str):
        super().__init__("API_007", {"category": category}, http_status=400)


class EmptyCorrectionError(PipelineError):
    """Raised when a correction carries neither a category nor a merchant."""

    def __init__(self):
        super().__init__("API_008", http_status=400)


class MissingIdentityError(PipelineError):
    """Raised when a request arrives without the caller's user id (API_003)."""

    def __init__(self):
        super().__init__("API_003", http_status=401)


class UnsupportedFileTypeError(PipelineError):
    """Raised for uploads that are not CSV (API_001)."""

    def __init__(self, filename: str | None = None):
        super().__init__("API_001", {"filename": filename}, http_status=400)


class FileTooLargeError(PipelineError):
    """Raised for uploads above ``csv_max_size_mb`` (API_002)."""

    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(
            "API_002", {"size_bytes": size_bytes, "limit_bytes": limit_bytes}, http_status=413
        )
