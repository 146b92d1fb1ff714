"""Unit tests for error handling middleware and PII filtering."""

import json
import logging
from unittest.mock import Mock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from txnflow.api.middleware.error_handler import (
    handle_generic_error,
    handle_integrity_error,
    handle_pipeline_error,
    handle_validation_error,
)
from txnflow.api.middleware.logging import JSONLogFormatter, filter_pii
from txnflow.core.errors import ERROR_CATALOG, get_error
from txnflow.core.exceptions import (
    BatchInputError,
    InvalidRecordError,
    TransactionNotFoundError,
    TransactionProcessingError,
    UnsupportedSourceError,
)


def _request(path: str = "/api/v1/transactions", method: str = "POST") -> Mock:
    request = Mock(spec=Request)
    request.url.path = path
    request.method = method
    return request


class TestPipelineErrorHandler:
    """Test custom exception handling."""

    @pytest.mark.asyncio
    async def test_handle_invalid_record(self):
        """Test handling of InvalidRecordError."""
        response = await handle_pipeline_error(_request(), InvalidRecordError({"issues": ["amount"]}))

        assert isinstance(response, JSONResponse)
        assert response.status_code == 422
        body = json.loads(response.body)
        assert body["error_code"] == "VAL_001"

    @pytest.mark.asyncio
    async def test_error_includes_all_fields(self):
        """Test error response includes all required fields."""
        response = await handle_pipeline_error(_request(), BatchInputError())

        body = json.loads(response.body)
        assert set(body) == {"error_code", "message", "user_message", "suggestion", "retry_allowed"}
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_not_found_is_404(self):
        response = await handle_pipeline_error(_request(method="GET"), TransactionNotFoundError("abc"))

        assert response.status_code == 404
        assert json.loads(response.body)["error_code"] == "API_006"

    @pytest.mark.asyncio
    async def test_details_are_not_exposed(self):
        """Details stay in logs; the body only carries catalog text."""
        response = await handle_pipeline_error(_request(), UnsupportedSourceError("fax"))

        assert "fax" not in response.body.decode()

    @pytest.mark.asyncio
    async def test_server_errors_log_at_error(self, caplog):
        with caplog.at_level(logging.ERROR):
            response = await handle_pipeline_error(_request(), TransactionProcessingError(RuntimeError("boom")))

        assert response.status_code == 500
        assert "PIPE_001" in caplog.text


class TestValidationErrorHandler:
    @pytest.mark.asyncio
    async def test_lists_fields(self):
        exc = RequestValidationError(
            [{"loc": ("body", "amount"), "msg": "Field required", "type": "missing"}]
        )

        response = await handle_validation_error(_request(), exc)

        assert response.status_code == 400
        body = json.loads(response.body)
        assert body["error_code"] == "VAL_003"
        assert "body.amount: Field required" in body["message"]


class TestIntegrityErrorHandler:
    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: transactions.duplicate_hash"))

        response = await handle_integrity_error(_request(), exc)

        assert response.status_code == 409
        assert json.loads(response.body)["error_code"] == "DB_002"

    @pytest.mark.asyncio
    async def test_other_violation_is_server_error(self):
        exc = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))

        response = await handle_integrity_error(_request(), exc)

        assert response.status_code == 500
        assert json.loads(response.body)["error_code"] == "DB_001"


class TestGenericErrorHandler:
    @pytest.mark.asyncio
    async def test_message_is_not_leaked(self, caplog):
        with caplog.at_level(logging.ERROR):
            response = await handle_generic_error(_request(), ValueError("account 123456789012345"))

        assert response.status_code == 500
        assert "123456789012345" not in response.body.decode()
        assert "123456789012345" not in caplog.text
        assert json.loads(response.body)["error_code"] == "SYS_001"


class TestErrorCatalog:
    def test_entries_are_complete(self):
        for code, entry in ERROR_CATALOG.items():
            assert entry["code"] == code
            assert {"message", "user_message", "suggestion", "retry_allowed"} <= set(entry)

    def test_unknown_code(self):
        assert get_error("NOPE_999")["code"] == "UNKNOWN"


class TestPIIFiltering:
    """Test PII filtering in logs."""

    def test_filter_card_number(self):
        assert filter_pii("Card 4111 1111 1111 1111 declined") == "Card [ACCOUNT] declined"

    def test_filter_masked_account(self):
        assert "1234" not in filter_pii("debited from a/c XX1234")

    def test_filter_email_and_vpa(self):
        filtered = filter_pii("alerts to john.doe@example.com, paid swiggy@icici")

        assert "[EMAIL]" in filtered
        assert "[VPA]" in filtered
        assert "john.doe" not in filtered
        assert "swiggy@icici" not in filtered

    def test_filter_pan_and_phone(self):
        filtered = filter_pii("PAN ABCDE1234F phone +91 9876543210")

        assert "ABCDE1234F" not in filtered
        assert "9876543210" not in filtered

    def test_plain_text_unchanged(self):
        assert filter_pii("Transaction processed") == "Transaction processed"
        assert filter_pii("") == ""


class TestJSONLogFormatter:
    def test_includes_extra_fields_and_filters(self):
        record = logging.LogRecord(
            "txnflow.test", logging.INFO, __file__, 1, "paid from XX9876", None, None
        )
        record.request_id = "req-1"
        record.processed = 3

        data = json.loads(JSONLogFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["request_id"] == "req-1"
        assert data["processed"] == 3
        assert "9876" not in data["message"]

    def test_correction_and_variance_fields_are_kept(self):
        record = logging.LogRecord("txnflow.test", logging.INFO, __file__, 1, "Transaction corrected", None, None)
        record.merchant_corrected = False
        record.category_corrected = True
        record.variance = 0.3

        data = json.loads(JSONLogFormatter().format(record))

        assert data["merchant_corrected"] is False
        assert data["category_corrected"] is True
        assert data["variance"] == 0.3
