"""
Tests for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from statement_engine.main import app, get_processor
from statement_engine.pipeline import FileProcessor


CSV_DATA = b"Date,Description,Amount\n2024-01-15,Salary,50000\n2024-01-16,Rent,-15000\n"


@pytest.fixture
def client(settings, today, fake_ocr):
    app.dependency_overrides[get_processor] = lambda: FileProcessor(
        settings, ocr_engine=fake_ocr(text="15/03/2024 Salary 100.00"), today=today,
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestExtract:

    def test_csv_upload(self, client):
        response = client.post("/api/extract", files={"file": ("jan.csv", CSV_DATA, "text/csv")})

        assert response.status_code == 200
        body = response.json()
        assert body["success"]
        assert body["filename"] == "jan.csv"
        assert len(body["transactions"]) == 2
        assert body["metadata"]["totalCredits"] == 50000
        assert body["metadata"]["fileType"] == "csv"

    def test_rejected_upload(self, client):
        response = client.post("/api/extract", files={"file": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 422
        body = response.json()
        assert not body["success"]
        assert "unsupported file type" in body["error"]

    def test_batch(self, client):
        response = client.post(
            "/api/extract/batch",
            files=[
                ("files", ("jan.csv", CSV_DATA, "text/csv")),
                ("files", ("scan.png", b"png-bytes", "image/png")),
                ("files", ("empty.csv", b"", "text/csv")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 2
        assert body["failed"] == 1
        assert body["total_transactions"] == 3
        assert [r["filename"] for r in body["results"]] == ["jan.csv", "scan.png", "empty.csv"]


class TestColumnSuggestions:

    def test_suggest(self, client):
        response = client.post("/api/columns/suggest", json={"headers": ["Txn Date", "Narration", "Desc", "Amount"]})

        assert response.status_code == 200
        body = response.json()
        assert body["mapping"]["date"] == 0
        assert body["mapping"]["amount"] == 3
        assert body["missing"] == []
        assert "description" in body["suggestions"]["Desc"]
