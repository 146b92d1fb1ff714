"""Integration tests for CSV import endpoints."""

import json

import pytest
from httpx import AsyncClient

STATEMENT = b"""Txn Date,Description,Debit,Credit
01/05/2024,UPI-SWIGGY,450.00,
03/05/2024,NETFLIX.COM,499.00,
05/05/2024,REFUND AMAZON,,120.00
"""


class TestPreview:
    @pytest.mark.asyncio
    async def test_preview(self, client: AsyncClient, user_headers):
        response = await client.post(
            "/api/v1/imports/csv/preview",
            files={"file": ("statement.csv", STATEMENT, "text/csv")},
            headers=user_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["headers"] == ["Txn Date", "Description", "Debit", "Credit"]
        assert data["total_rows"] == 3
        assert data["detected_columns"]["date"] == "Txn Date"
        assert data["detected_columns"]["debit"] == "Debit"
        assert data["detected_columns"]["credit"] == "Credit"

    @pytest.mark.asyncio
    async def test_rejects_non_csv(self, client: AsyncClient, user_headers):
        response = await client.post(
            "/api/v1/imports/csv/preview",
            files={"file": ("statement.pdf", b"%PDF-1.4", "application/pdf")},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "API_001"


class TestImport:
    @pytest.mark.asyncio
    async def test_import_then_reimport(self, client: AsyncClient, user_headers):
        files = {"file": ("statement.csv", STATEMENT, "text/csv")}

        first = await client.post("/api/v1/imports/csv", files=files, headers=user_headers)
        second = await client.post("/api/v1/imports/csv", files=files, headers=user_headers)

        assert first.status_code == 200
        assert first.json()["processed"] == 3
        assert first.json()["success"] is True
        assert second.json()["processed"] == 0
        assert second.json()["duplicates"] == 3

        listed = await client.get("/api/v1/transactions", params={"source": "csv"}, headers=user_headers)
        assert listed.json()["pagination"]["total"] == 3

    @pytest.mark.asyncio
    async def test_explicit_column_mapping(self, client: AsyncClient, user_headers):
        content = b"On,Who,Out\n01/05/2024,NETFLIX,499\n"
        mapping = {"date": "On", "description": "Who", "debit": "Out"}

        response = await client.post(
            "/api/v1/imports/csv",
            files={"file": ("s.csv", content, "text/csv")},
            data={"column_mapping": json.dumps(mapping)},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["transactions"][0]["merchant_normalized"] == "Netflix"

    @pytest.mark.asyncio
    async def test_invalid_column_mapping(self, client: AsyncClient, user_headers):
        response = await client.post(
            "/api/v1/imports/csv",
            files={"file": ("s.csv", STATEMENT, "text/csv")},
            data={"column_mapping": "{not json"},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VAL_003"

    @pytest.mark.asyncio
    async def test_empty_file(self, client: AsyncClient, user_headers):
        response = await client.post(
            "/api/v1/imports/csv", files={"file": ("s.csv", b"", "text/csv")}, headers=user_headers
        )

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["message"] == "CSV file is empty"
