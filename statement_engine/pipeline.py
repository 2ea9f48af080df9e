"""
File processing pipeline.

Coordinates one upload end to end:
1. Upload validation (size, MIME type, extension)
2. Source-specific extraction
3. Post-processing (dedup, sort, balance) and near-duplicate report
4. Metadata and audit trail
"""

import time
from datetime import date
from pathlib import PurePath
from typing import Callable, Dict, Optional, Sequence, Tuple
from uuid import uuid4

import structlog

from .config import Settings, get_settings
from .ingestion import (
    CSVExtractor,
    EmptyFileError,
    ExcelExtractor,
    ExtractionError,
    FileTooLargeError,
    ImageExtractor,
    PDFExtractor,
    UnsupportedFileError,
)
from .integrations.ocr import OCREngine
from .models import (
    AuditAction,
    BatchResult,
    ExtractionOutcome,
    ProcessingMetadata,
    ProcessingResult,
    SourceType,
)
from .processing.duplicates import find_duplicates
from .processing.post_processor import post_process
from .utils import AuditLogger, sha256_hex

logger = structlog.get_logger()


EXTENSION_TYPES: Dict[str, SourceType] = {
    "pdf": SourceType.PDF,
    "xlsx": SourceType.EXCEL,
    "xls": SourceType.EXCEL,
    "csv": SourceType.CSV,
    "jpg": SourceType.IMAGE,
    "jpeg": SourceType.IMAGE,
    "png": SourceType.IMAGE,
}

# Sent by clients that do not know the type; the extension decides instead
GENERIC_CONTENT_TYPES = ("", "application/octet-stream")

ProgressCallback = Callable[[float, str], None]
UploadedFile = Tuple[bytes, str, Optional[str]]


class FileProcessor:
    """
    Turns uploaded statement files into processed transactions.

    Hard failures (validation, missing columns, nothing extracted) come
    back as ``ProcessingResult(success=False, error=...)``; they never
    escape process_file.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ocr_engine: Optional[OCREngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[date] = None,
    ):
        self.settings = settings or get_settings()
        self.audit = audit_logger or AuditLogger(job_id=str(uuid4()), settings=self.settings)
        self.extractors = {
            SourceType.PDF: PDFExtractor(self.settings, ocr_engine=ocr_engine, today=today),
            SourceType.EXCEL: ExcelExtractor(self.settings, today=today),
            SourceType.CSV: CSVExtractor(self.settings, today=today),
            SourceType.IMAGE: ImageExtractor(self.settings, ocr_engine=ocr_engine, today=today),
        }

    def validate(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> SourceType:
        """
        Check an upload and return its source type.

        Raises:
            EmptyFileError: zero-byte upload
            FileTooLargeError: larger than max_upload_bytes
            UnsupportedFileError: MIME type or extension not accepted
        """
        if not data:
            raise EmptyFileError(f"{filename}: file is empty")

        if len(data) > self.settings.max_upload_bytes:
            raise FileTooLargeError(
                f"{filename}: file size {len(data) / 1024 / 1024:.1f} MB exceeds the "
                f"{self.settings.max_upload_mb:.0f} MB limit"
            )

        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in GENERIC_CONTENT_TYPES and mime not in self.settings.allowed_mime_types:
            raise UnsupportedFileError(f"{filename}: unsupported file type {content_type}")

        extension = PurePath(filename).suffix.lower().lstrip(".")
        source_type = EXTENSION_TYPES.get(extension)
        if source_type is None:
            raise UnsupportedFileError(
                f"{filename}: unsupported file extension '.{extension}'. "
                f"Supported: {', '.join(sorted(EXTENSION_TYPES))}"
            )
        return source_type

    def process_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> ProcessingResult:
        """Validate, extract and post-process one file."""
        start_time = time.perf_counter()
        logger.info("Processing file", filename=filename, size=len(data), content_type=content_type)
        self.audit.record(AuditAction.FILE_RECEIVED, f"Received {filename}", filename=filename, size=len(data))

        try:
            source_type = self.validate(data, filename, content_type)
        except ExtractionError as e:
            logger.warning("File rejected", filename=filename, error=str(e))
            self.audit.record(
                AuditAction.FILE_REJECTED, f"Rejected {filename}",
                filename=filename, success=False, error_message=str(e),
            )
            return ProcessingResult(filename=filename, success=False, error=str(e))

        try:
            outcome = self.extractors[source_type].extract(data, filename)
        except ExtractionError as e:
            logger.warning("Extraction failed", filename=filename, error=str(e))
            return self._failed(filename, str(e))
        except Exception as e:
            logger.exception("Unexpected extraction error", filename=filename)
            return self._failed(filename, f"{filename}: processing failed: {e}")

        transactions = post_process(outcome.transactions, filename, source_type)
        # Near-duplicates are reported, never dropped
        duplicates = find_duplicates(transactions, self.settings)
        metadata = self._build_metadata(outcome, transactions, source_type, data, start_time)
        metadata.fuzzy_duplicates = len(duplicates.all)
        metadata.duplicate_pairs = [match.to_dict() for match in duplicates.all]
        self._audit_outcome(filename, outcome, metadata, transactions)

        logger.info(
            "File processed",
            filename=filename,
            transactions=metadata.total_transactions,
            strategy=metadata.strategy,
            duration_ms=metadata.processing_time_ms,
        )
        return ProcessingResult(
            filename=filename,
            success=True,
            transactions=transactions,
            metadata=metadata,
        )

    def process_batch(
        self,
        files: Sequence[UploadedFile],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Process files one at a time in submission order.

        ``progress_callback(percent, filename)`` fires after each file.
        """
        batch = BatchResult()
        total = len(files)

        for index, (data, filename, content_type) in enumerate(files, start=1):
            batch.results.append(self.process_file(data, filename, content_type))
            if progress_callback:
                progress_callback(index / total * 100, filename)

        logger.info("Batch processed", files=total, succeeded=batch.succeeded, failed=batch.failed)
        return batch

    def _failed(self, filename: str, error: str) -> ProcessingResult:
        self.audit.record(
            AuditAction.EXTRACTION_FAILED, f"Extraction failed for {filename}",
            filename=filename, success=False, error_message=error,
        )
        return ProcessingResult(filename=filename, success=False, error=error)

    def _build_metadata(
        self,
        outcome: ExtractionOutcome,
        transactions,
        source_type: SourceType,
        data: bytes,
        start_time: float,
    ) -> ProcessingMetadata:
        return ProcessingMetadata(
            total_transactions=len(transactions),
            total_credits=round(sum(t.credit_amount for t in transactions), 2),
            total_debits=round(sum(t.debit_amount for t in transactions), 2),
            file_type=source_type.value,
            processing_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            total_rows=outcome.total_rows,
            processed_rows=outcome.processed_rows,
            skipped_rows=outcome.skipped_rows,
            duplicates_removed=len(outcome.transactions) - len(transactions),
            date_fallbacks=outcome.date_fallbacks,
            manual_review_count=sum(1 for t in transactions if t.needs_manual_review),
            strategy=outcome.strategy,
            file_hash=sha256_hex(data),
            extracted_text=outcome.extracted_text[:self.settings.text_preview_chars],
            column_mapping=outcome.column_mapping,
            statement_details=outcome.statement_details,
            warnings=list(outcome.warnings),
        )

    def _audit_outcome(self, filename, outcome, metadata, transactions) -> None:
        if outcome.column_mapping:
            action = AuditAction.COLUMNS_SNIFFED if outcome.columns_sniffed else AuditAction.COLUMNS_MAPPED
            self.audit.record(
                action, f"Columns mapped for {filename}",
                filename=filename, mapping=outcome.column_mapping,
            )
        self.audit.record(
            AuditAction.STRATEGY_APPLIED, f"Extracted {filename} with {outcome.strategy}",
            filename=filename, strategy=outcome.strategy,
        )
        if metadata.skipped_rows:
            self.audit.record(
                AuditAction.ROWS_SKIPPED, f"Skipped {metadata.skipped_rows} rows in {filename}",
                filename=filename, skipped=metadata.skipped_rows,
            )
        if metadata.date_fallbacks:
            self.audit.record(
                AuditAction.DATE_FALLBACK,
                f"{metadata.date_fallbacks} unparseable dates replaced with today in {filename}",
                filename=filename, count=metadata.date_fallbacks,
            )
        if metadata.duplicates_removed:
            self.audit.record(
                AuditAction.DUPLICATES_REMOVED,
                f"Removed {metadata.duplicates_removed} duplicate rows from {filename}",
                filename=filename, count=metadata.duplicates_removed,
            )
        if metadata.fuzzy_duplicates:
            self.audit.record(
                AuditAction.DUPLICATES_FOUND,
                f"{metadata.fuzzy_duplicates} possible duplicate pairs in {filename}",
                filename=filename,
                transaction_ids=[pair["duplicateId"] for pair in metadata.duplicate_pairs],
            )
        if metadata.manual_review_count:
            self.audit.record(
                AuditAction.MANUAL_REVIEW_REQUIRED, f"{filename} needs manual entry",
                filename=filename,
                transaction_ids=[t.id for t in transactions if t.needs_manual_review],
            )
        self.audit.record(
            AuditAction.EXTRACTION_COMPLETED, f"Extracted {metadata.total_transactions} transactions from {filename}",
            filename=filename,
            transaction_ids=[t.id for t in transactions],
        )
