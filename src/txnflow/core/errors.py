"""Error codes and user-friendly messages.

This module defines the error catalog for transaction processing.
Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
"""

# Error catalog for transaction processing
ERROR_CATALOG: dict[str, dict] = {
    "VAL_001": {
        "code": "VAL_001",
        "message": "Raw transaction record could not be normalized",
        "user_message": "This transaction is missing a usable amount.",
        "suggestion": "Check the amount field and submit the transaction again.",
        "retry_allowed": False,
    },
    "VAL_002": {
        "code": "VAL_002",
        "message": "Unsupported transaction source",
        "user_message": "We don't accept transactions from this source.",
        "suggestion": "Use one of: manual, csv, sms, email, aa.",
        "retry_allowed": False,
    },
    "VAL_003": {
        "code": "VAL_003",
        "message": "Request payload failed validation",
        "user_message": "Invalid input data.",
        "suggestion": "Please check your input and try again.",
        "retry_allowed": True,
    },
    "BATCH_001": {
        "code": "BATCH_001",
        "message": "Batch input is empty or unreadable",
        "user_message": "There were no transactions to import.",
        "suggestion": "Check that the file or payload contains at least one row.",
        "retry_allowed": False,
    },
    "PIPE_001": {
        "code": "PIPE_001",
        "message": "Transaction processing failed",
        "user_message": "We couldn't save this transaction.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "DB_001": {
        "code": "DB_001",
        "message": "Database transaction failed",
        "user_message": "We couldn't save your data due to a database error.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "DB_002": {
        "code": "DB_002",
        "message": "Resource already exists",
        "user_message": "This record already exists.",
        "suggestion": "Please check if the record was already created.",
        "retry_allowed": False,
    },
    "SYS_001": {
        "code": "SYS_001",
        "message": "Internal server error",
        "user_message": "An unexpected error occurred.",
        "suggestion": "Please try again later or contact support.",
        "retry_allowed": True,
    },
    # API-specific errors
    "API_001": {
        "code": "API_001",
        "message": "Invalid file type uploaded",
        "user_message": "Only CSV files are supported.",
        "suggestion": "Export your bank statement as CSV and upload it again.",
        "retry_allowed": False,
    },
    "API_002": {
        "code": "API_002",
        "message": "File size exceeds maximum limit",
        "user_message": "The file is too large.",
        "suggestion": "Split the statement into smaller files and upload them separately.",
        "retry_allowed": False,
    },
    "API_003": {
        "code": "API_003",
        "message": "Missing caller identity",
        "user_message": "We couldn't identify who sent this request.",
        "suggestion": "Send requests through the gateway so the user id is attached.",
        "retry_allowed": False,
    },
    "API_006": {
        "code": "API_006",
        "message": "Transaction not found",
        "user_message": "We couldn't find this transaction.",
        "suggestion": "Please refresh and try again.",
        "retry_allowed": False,
    },
    "API_007": {
        "code": "API_007",
        "message": "Invalid category",
        "user_message": "That category isn't supported.",
        "suggestion": "Please choose a category from the allowed list.",
        "retry_allowed": False,
    },
    "API_008": {
        "code": "API_008",
        "message": "Correction payload is empty",
        "user_message": "Nothing to update.",
        "suggestion": "Provide a category or a merchant name.",
        "retry_allowed": False,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details (a generic definition for unknown codes)
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]
