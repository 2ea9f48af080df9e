"""Data models for the statement extraction engine."""

from .enums import (
    AuditAction,
    Category,
    CellKind,
    ColumnRole,
    SourceType,
)
from .cell import Cell, RawRow, EMPTY_CELL, make_row, row_is_blank, cell_at
from .transaction import (
    Transaction,
    DEFAULT_PAYMENT_TYPE,
    MANUAL_ENTRY_DESCRIPTION,
)
from .results import (
    AuditEntry,
    BatchResult,
    DuplicateCheck,
    DuplicateMatch,
    DuplicateReport,
    ExtractionOutcome,
    PersistedDuplicate,
    PersistenceReport,
    ProcessingMetadata,
    ProcessingResult,
)

__all__ = [
    # Enums
    "AuditAction",
    "Category",
    "CellKind",
    "ColumnRole",
    "SourceType",
    # Cells
    "Cell",
    "RawRow",
    "EMPTY_CELL",
    "make_row",
    "row_is_blank",
    "cell_at",
    # Transactions
    "Transaction",
    "DEFAULT_PAYMENT_TYPE",
    "MANUAL_ENTRY_DESCRIPTION",
    # Results
    "AuditEntry",
    "BatchResult",
    "DuplicateCheck",
    "DuplicateMatch",
    "DuplicateReport",
    "ExtractionOutcome",
    "PersistedDuplicate",
    "PersistenceReport",
    "ProcessingMetadata",
    "ProcessingResult",
]
