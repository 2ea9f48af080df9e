"""
Shared fixtures: isolated settings, fake OCR and fake PDF text sources.
"""

from datetime import date
from typing import Dict, List

import pytest

from statement_engine.config import Settings
from statement_engine.models import Category, SourceType, Transaction


TODAY = date(2024, 6, 1)


class FakeOCREngine:
    """Returns canned text; records every image it was given."""

    name = "fake"

    def __init__(self, text: str = "", error: Exception = None):
        self.text = text
        self.error = error
        self.calls: List[bytes] = []

    def recognize(self, image_bytes: bytes) -> str:
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return self.text


class FakePDFTextSource:
    """Stand-in for PDFTextSource built from per-page strings."""

    pages: Dict[str, List[str]] = {}

    def __init__(self, data: bytes, filename: str = ""):
        self.filename = filename
        self._pages = list(self.pages.get(filename, [data.decode("utf-8", errors="ignore")]))
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def get_page_text(self, page_number: int) -> str:
        return self._pages[page_number - 1]

    def get_text(self) -> str:
        return "\n".join(self._pages)

    def render_pages(self, dpi: int = 200) -> List[bytes]:
        return [f"page-{n}".encode() for n in range(1, self.page_count + 1)]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        reports_dir=tmp_path / "reports",
        log_dir=tmp_path / "logs",
        ocr_provider="tesseract",
    )


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_transaction():
    """Factory for transactions with sensible defaults."""

    def _make(**overrides) -> Transaction:
        values = dict(
            date="2024-01-15",
            description="Payment to vendor",
            payment_type="bank_transfer",
            category=Category.TRANSFER_OUT,
            credit_amount=0.0,
            debit_amount=100.0,
            source_file="statement.csv",
            source_type=SourceType.CSV,
        )
        values.update(overrides)
        return Transaction(**values)

    return _make


@pytest.fixture
def fake_ocr():
    return FakeOCREngine


@pytest.fixture
def fake_pdf_source():
    return FakePDFTextSource
