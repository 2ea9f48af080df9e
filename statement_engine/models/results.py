"""Processing, duplicate detection and audit result models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import uuid4

from .enums import AuditAction
from .transaction import Transaction


@dataclass
class ExtractionOutcome:
    """What a source-specific extractor produced for one file."""
    transactions: List[Transaction] = field(default_factory=list)
    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0
    date_fallbacks: int = 0
    strategy: str = ""
    extracted_text: str = ""
    column_mapping: Dict[str, int] = field(default_factory=dict)
    columns_sniffed: bool = False
    statement_details: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ProcessingMetadata:
    """Summary metadata handed to the caller alongside the transactions."""
    total_transactions: int = 0
    total_credits: float = 0.0
    total_debits: float = 0.0
    file_type: str = ""
    processing_time_ms: float = 0.0

    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0
    duplicates_removed: int = 0
    fuzzy_duplicates: int = 0
    date_fallbacks: int = 0
    manual_review_count: int = 0

    strategy: str = ""
    file_hash: str = ""
    extracted_text: str = ""
    column_mapping: Dict[str, int] = field(default_factory=dict)
    statement_details: Dict[str, str] = field(default_factory=dict)
    duplicate_pairs: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTransactions": self.total_transactions,
            "totalCredits": self.total_credits,
            "totalDebits": self.total_debits,
            "fileType": self.file_type,
            "processingTime": self.processing_time_ms,
            "totalRows": self.total_rows,
            "processedRows": self.processed_rows,
            "skippedRows": self.skipped_rows,
            "duplicatesRemoved": self.duplicates_removed,
            "fuzzyDuplicates": self.fuzzy_duplicates,
            "dateFallbacks": self.date_fallbacks,
            "manualReviewCount": self.manual_review_count,
            "strategy": self.strategy,
            "fileHash": self.file_hash,
            "extractedText": self.extracted_text,
            "columnMapping": self.column_mapping,
            "statementDetails": self.statement_details,
            "warnings": self.warnings,
            "duplicatePairs": self.duplicate_pairs,
        }


@dataclass
class ProcessingResult:
    """Result of processing one uploaded file."""
    filename: str
    success: bool = False
    transactions: List[Transaction] = field(default_factory=list)
    error: Optional[str] = None
    metadata: Optional[ProcessingMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "success": self.success,
            "transactions": [t.to_dict() for t in self.transactions],
            "error": self.error,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass
class BatchResult:
    """Results of a sequential multi-file upload."""
    results: List[ProcessingResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def transactions(self) -> List[Transaction]:
        return [t for r in self.results for t in r.transactions]


@dataclass
class DuplicateCheck:
    """Outcome of scoring two transactions against each other."""
    is_duplicate: bool
    confidence: int
    reasons: List[str] = field(default_factory=list)


@dataclass
class DuplicateMatch:
    """A pair of transactions judged to be the same real-world event."""
    original: Transaction
    duplicate: Transaction
    confidence: int
    match_type: str = "fuzzy"  # "exact" or "fuzzy"
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalId": self.original.id,
            "duplicateId": self.duplicate.id,
            "description": self.duplicate.description,
            "confidence": self.confidence,
            "matchType": self.match_type,
            "reasons": self.reasons,
        }


@dataclass
class DuplicateReport:
    """Intra-batch duplicate findings."""
    exact: List[DuplicateMatch] = field(default_factory=list)
    fuzzy: List[DuplicateMatch] = field(default_factory=list)

    @property
    def all(self) -> List[DuplicateMatch]:
        return self.exact + self.fuzzy

    @property
    def potential_savings(self) -> float:
        """Sum of the amounts carried by the duplicate side of each pair."""
        return sum(abs(m.duplicate.net_amount) for m in self.all)

    def summary(self) -> Dict[str, Any]:
        return {
            "total_duplicates": len(self.all),
            "exact_count": len(self.exact),
            "fuzzy_count": len(self.fuzzy),
            "potential_savings": self.potential_savings,
        }


@dataclass
class PersistedDuplicate:
    """A new transaction that matched an already stored record."""
    transaction: Transaction
    existing_id: str
    confidence: int
    reasons: List[str] = field(default_factory=list)


@dataclass
class PersistenceReport:
    """Result of inserting transactions with duplicate prevention."""
    total_processed: int = 0
    inserted_ids: List[str] = field(default_factory=list)
    duplicates: List[PersistedDuplicate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return len(self.inserted_ids)


@dataclass
class AuditEntry:
    """An entry in the audit log."""
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)

    # Action
    action: AuditAction = AuditAction.FILE_RECEIVED

    # Context
    filename: Optional[str] = None
    transaction_ids: List[str] = field(default_factory=list)

    # Details
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    # Outcome
    success: bool = True
    error_message: Optional[str] = None
