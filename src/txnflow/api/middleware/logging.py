"""Request logging middleware and log formatting with PII filtering.

- Unique request IDs for tracing (echoed in ``X-Request-ID``)
- Request duration tracking
- Caller context from the ``X-User-Id`` header
- PII filtering so account numbers, VPAs and phone numbers never reach
  the log sink
"""

import json
import logging
import re
import sys
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from txnflow.config import settings

logger = logging.getLogger(__name__)


# PII patterns to filter from logs
PII_PATTERNS = [
    # Card/account numbers (13-19 digits, with or without spaces/dashes)
    (re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{1,7}\b"), "[ACCOUNT]"),
    # Masked account numbers as they appear in alerts (XX1234, **1234)
    (re.compile(r"(?:[Xx*]{2,})\d{3,6}\b"), "[ACCOUNT]"),
    # Email addresses
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    # UPI VPAs (name@bank)
    (re.compile(r"\b[A-Za-z0-9.\-_]{2,}@[A-Za-z]{2,}\b"), "[VPA]"),
    # PAN card (5 letters, 4 digits, 1 letter)
    (re.compile(r"\b[A-Z]{5}\d{4}[A-Z]\b"), "[PAN]"),
    # Indian mobile numbers, optionally with country code
    (re.compile(r"(?:\+91[-\s]?)?\b[6-9]\d{9}\b"), "[PHONE]"),
]

# Extra attributes copied from log records into JSON output.
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_code",
    "error_type",
    "client_ip",
    "transaction_id",
    "group_id",
    "source",
    "category",
    "confidence",
    "processed",
    "duplicates",
    "errors",
    "skipped",
    "rows",
    "row",
    "issues",
    "interval",
    "variance",
    "transaction_count",
    "updated_transactions_count",
    "merchant_corrected",
    "category_corrected",
)


def filter_pii(text: str) -> str:
    """Remove PII from text using regex patterns.

    Args:
        text: Input text that may contain PII

    Returns:
        Text with PII replaced by placeholders
    """
    if not text:
        return text

    filtered = text
    for pattern, replacement in PII_PATTERNS:
        filtered = pattern.sub(replacement, filtered)

    return filtered


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests with PII filtering."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()
        user_id = request.headers.get("X-User-Id")

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "method": request.method,
                "path": filter_pii(str(request.url.path)),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "method": request.method,
                    "path": filter_pii(str(request.url.path)),
                    "duration_ms": duration_ms,
                    "error_type": type(exc).__name__,
                },
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "method": request.method,
                "path": filter_pii(str(request.url.path)),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        return response


class JSONLogFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": filter_pii(record.getMessage()),
        }

        for name in EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = filter_pii(value) if isinstance(value, str) else value

        if record.exc_info:
            log_data["exception"] = filter_pii(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """Install the root handler: JSON when ``LOG_JSON`` is set, plain text otherwise."""
    handler = logging.StreamHandler(sys.stdout)
    if settings.log_json:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level.upper())
