"""Global error handling.

Every failure leaves the API in the same JSON shape:
``{error_code, message, user_message, suggestion, retry_allowed}``.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from txnflow.config import settings
from txnflow.core.errors import get_error
from txnflow.core.exceptions import PipelineError
from txnflow.schemas.transaction import error_body

logger = logging.getLogger(__name__)


async def handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
    """Handle pipeline exceptions using the error catalog.

    Args:
        request: The incoming request
        exc: The pipeline exception

    Returns:
        JSONResponse with error details from catalog
    """
    # Details may hold record fragments; only log them in debug.
    extra = {"error_code": exc.error_code, "path": request.url.path, "method": request.method}
    if settings.debug:
        extra["details"] = exc.details

    if exc.http_status >= 500:
        logger.error(f"Pipeline error: {exc.error_code}", extra=extra)
    else:
        logger.warning(f"Pipeline error: {exc.error_code}", extra=extra)

    return JSONResponse(status_code=exc.http_status, content=error_body(get_error(exc.error_code)))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors.

    Args:
        request: The incoming request
        exc: The validation error

    Returns:
        JSONResponse listing the offending fields
    """
    errors = exc.errors()
    error_messages = []

    for error in errors:
        field = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        error_messages.append(f"{field}: {msg}")

    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        extra["errors"] = errors
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    content = error_body(get_error("VAL_003"))
    content["message"] = " | ".join(error_messages)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity errors.

    Args:
        request: The incoming request
        exc: The integrity error

    Returns:
        JSONResponse with error details
    """
    # Do not log str(exc): it can include SQL + bound parameters.
    if settings.debug:
        logger.exception(
            f"Database integrity error on {request.url.path}",
            extra={"path": request.url.path, "method": request.method},
        )
    else:
        logger.error(
            f"Database integrity error on {request.url.path}",
            extra={"path": request.url.path, "method": request.method},
        )

    error_msg = str(exc).lower()
    if "unique" in error_msg or "duplicate" in error_msg:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_body(get_error("DB_002")))

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_body(get_error("DB_001"))
    )


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Args:
        request: The incoming request
        exc: The unexpected exception

    Returns:
        JSONResponse with generic error message
    """
    # In non-debug: do not log str(exc) or traceback (may include sensitive data).
    extra = {"error_type": type(exc).__name__, "path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_body(get_error("SYS_001"))
    )
