"""
Tests for the file processing pipeline: validation, dispatch, metadata and audit.
"""

import hashlib

import pytest

from statement_engine.errors import EmptyFileError, FileTooLargeError, UnsupportedFileError
from statement_engine.ingestion.pdf_extractor import PDFExtractor
from statement_engine.models import AuditAction, SourceType
from statement_engine.pipeline import FileProcessor


SALARY_CSV = (
    "Date,Description,Amount\n"
    "2024-01-16,Rent,-15000\n"
    "2024-01-15,Salary,50000\n"
    "2024-01-15,Salary,50000\n"
).encode()


@pytest.fixture
def processor(settings, today, fake_ocr):
    return FileProcessor(settings, ocr_engine=fake_ocr(text="15/03/2024 Salary 100.00 Cr"), today=today)


def audit_actions(processor):
    return [e.action for e in processor.audit.entries]


class TestValidation:

    def test_extension_decides_source_type(self, processor):
        assert processor.validate(b"x", "jan.CSV", "text/csv") == SourceType.CSV
        assert processor.validate(b"x", "scan.jpeg", "image/jpeg") == SourceType.IMAGE
        assert processor.validate(b"x", "book.xls", None) == SourceType.EXCEL

    def test_generic_content_type_defers_to_extension(self, processor):
        assert processor.validate(b"x", "march.pdf", "application/octet-stream") == SourceType.PDF

    def test_empty_file(self, processor):
        with pytest.raises(EmptyFileError, match="jan.csv: file is empty"):
            processor.validate(b"", "jan.csv", "text/csv")

    def test_too_large(self, processor, settings):
        settings.max_upload_bytes = 4

        with pytest.raises(FileTooLargeError, match="exceeds"):
            processor.validate(b"12345", "jan.csv", "text/csv")

    def test_mime_not_allowed(self, processor):
        with pytest.raises(UnsupportedFileError, match="unsupported file type application/zip"):
            processor.validate(b"x", "jan.csv", "application/zip")

    def test_extension_not_allowed(self, processor):
        with pytest.raises(UnsupportedFileError, match=r"unsupported file extension '\.txt'"):
            processor.validate(b"x", "notes.txt", None)


class TestProcessFile:

    def test_csv_success(self, processor):
        result = processor.process_file(SALARY_CSV, "jan.csv", "text/csv")

        assert result.success
        assert result.error is None
        assert [t.description for t in result.transactions] == ["Salary", "Rent"]
        assert [t.balance for t in result.transactions] == [50000, 35000]

        metadata = result.metadata
        assert metadata.total_transactions == 2
        assert metadata.total_credits == 50000
        assert metadata.total_debits == 15000
        assert metadata.file_type == "csv"
        assert metadata.duplicates_removed == 1
        assert metadata.processed_rows == 3
        assert metadata.strategy == "csv_columns"
        assert metadata.file_hash == hashlib.sha256(SALARY_CSV).hexdigest()
        assert metadata.processing_time_ms >= 0

    def test_csv_audit_trail(self, processor):
        processor.process_file(SALARY_CSV, "jan.csv", "text/csv")

        assert audit_actions(processor) == [
            AuditAction.FILE_RECEIVED,
            AuditAction.COLUMNS_MAPPED,
            AuditAction.STRATEGY_APPLIED,
            AuditAction.DUPLICATES_REMOVED,
            AuditAction.EXTRACTION_COMPLETED,
        ]
        completed = processor.audit.entries[-1]
        assert len(completed.transaction_ids) == 2

    def test_near_duplicates_are_reported_not_dropped(self, processor):
        data = (
            "Date,Description,Amount\n"
            "2024-01-15,IMPS/1234 Payment to John,-500\n"
            "2024-01-15,IMPS/5678 Payment to John,-500\n"
        ).encode()

        result = processor.process_file(data, "imps.csv", "text/csv")

        assert len(result.transactions) == 2
        assert result.metadata.duplicates_removed == 0
        assert result.metadata.fuzzy_duplicates == 1
        pair = result.metadata.duplicate_pairs[0]
        assert pair["originalId"] == result.transactions[0].id
        assert pair["duplicateId"] == result.transactions[1].id
        assert pair["confidence"] == 100
        assert pair["matchType"] == "fuzzy"
        found = processor.audit.get_entries(action_filter="duplicates_found")
        assert found[0].transaction_ids == [result.transactions[1].id]

    def test_metadata_serialization(self, processor):
        result = processor.process_file(SALARY_CSV, "jan.csv", "text/csv")

        data = result.to_dict()

        assert data["metadata"]["duplicatesRemoved"] == 1
        assert data["metadata"]["fuzzyDuplicates"] == 0
        assert data["metadata"]["duplicatePairs"] == []
        assert data["metadata"]["columnMapping"] == {"date": 0, "description": 1, "amount": 2}
        assert data["transactions"][0]["category"] == "salary"
        assert data["transactions"][0]["source_type"] == "csv"

    def test_image_through_ocr(self, processor):
        result = processor.process_file(b"png-bytes", "receipt.png", "image/png")

        assert result.success
        assert result.metadata.file_type == "image"
        assert result.metadata.extracted_text.startswith("15/03/2024")
        assert result.transactions[0].credit_amount == 100

    def test_placeholder_needs_manual_review(self, processor, settings, today, fake_ocr, fake_pdf_source):
        processor.extractors[SourceType.PDF] = PDFExtractor(
            settings, ocr_engine=fake_ocr(), text_source_factory=fake_pdf_source, today=today,
        )

        result = processor.process_file(b"Dear customer", "letter.pdf", "application/pdf")

        assert result.success
        assert result.metadata.manual_review_count == 1
        assert AuditAction.MANUAL_REVIEW_REQUIRED in audit_actions(processor)

    def test_rejected_upload(self, processor):
        result = processor.process_file(b"", "jan.csv", "text/csv")

        assert not result.success
        assert result.error == "jan.csv: file is empty"
        assert audit_actions(processor) == [AuditAction.FILE_RECEIVED, AuditAction.FILE_REJECTED]

    def test_extraction_error(self, processor):
        result = processor.process_file(b"Description,Amount\nRent,100\n", "nodate.csv", "text/csv")

        assert not result.success
        assert "Date column not found" in result.error
        assert result.transactions == []
        last = processor.audit.entries[-1]
        assert last.action == AuditAction.EXTRACTION_FAILED
        assert not last.success

    def test_unexpected_error_is_contained(self, processor, monkeypatch):
        def explode(data, filename):
            raise RuntimeError("boom")

        monkeypatch.setattr(processor.extractors[SourceType.CSV], "extract", explode)

        result = processor.process_file(SALARY_CSV, "jan.csv", "text/csv")

        assert not result.success
        assert result.error == "jan.csv: processing failed: boom"

    def test_skipped_rows_and_date_fallbacks_are_audited(self, processor):
        data = b"Date,Description,Amount\nsometime,Lunch,-250\n2024-01-02,Nothing,0\n"

        result = processor.process_file(data, "odd.csv", "text/csv")

        assert result.metadata.skipped_rows == 1
        assert result.metadata.date_fallbacks == 1
        actions = audit_actions(processor)
        assert AuditAction.ROWS_SKIPPED in actions
        assert AuditAction.DATE_FALLBACK in actions


class TestProcessBatch:

    def test_sequential_with_progress(self, processor):
        progress = []

        batch = processor.process_batch(
            [
                (SALARY_CSV, "jan.csv", "text/csv"),
                (b"hello", "notes.txt", "text/plain"),
            ],
            progress_callback=lambda percent, filename: progress.append((percent, filename)),
        )

        assert [r.filename for r in batch.results] == ["jan.csv", "notes.txt"]
        assert batch.succeeded == 1
        assert batch.failed == 1
        assert len(batch.transactions) == 2
        assert progress == [(50.0, "jan.csv"), (100.0, "notes.txt")]

    def test_empty_batch(self, processor):
        batch = processor.process_batch([])

        assert batch.results == []
