"""Enumerations for the statement extraction engine."""

from enum import Enum


class SourceType(str, Enum):
    """Provenance of a transaction."""
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"
    IMAGE = "image"
    MANUAL = "manual"


class ColumnRole(str, Enum):
    """
    Semantic meaning assigned to a spreadsheet column.

    CUSTOMER and PAYMENT_METHOD only feed the synthetic description
    "{customer} - {payment_method} payment" when no description column exists.
    """
    DATE = "date"
    DESCRIPTION = "description"
    CREDIT = "credit"
    DEBIT = "debit"
    AMOUNT = "amount"
    BALANCE = "balance"
    PAYMENT_TYPE = "payment_type"
    ACCOUNT_NO = "account_no"
    REFERENCE_ID = "reference_id"
    CUSTOMER = "customer"
    PAYMENT_METHOD = "payment_method"


class Category(str, Enum):
    """Closed transaction taxonomy."""
    # Income side
    SALARY = "salary"
    BUSINESS_INCOME = "business_income"
    INVESTMENT = "investment"
    REFUND = "refund"
    TRANSFER_IN = "transfer_in"

    # Expense side
    BUSINESS_EXPENSE = "business_expense"
    PERSONAL_EXPENSE = "personal_expense"
    TRAVEL_TRANSPORT = "travel_transport"
    MEALS_ENTERTAINMENT = "meals_entertainment"
    OFFICE_SUPPLIES = "office_supplies"
    SOFTWARE_SUBSCRIPTIONS = "software_subscriptions"
    UTILITIES = "utilities"
    MEDICAL = "medical"
    EDUCATION = "education"
    INSURANCE = "insurance"
    SHOPPING = "shopping"
    LOAN_PAYMENT = "loan_payment"
    MAINTENANCE = "maintenance"
    WITHDRAWAL = "withdrawal"
    TRANSFER_OUT = "transfer_out"
    FUEL = "fuel"


class CellKind(str, Enum):
    """Kind tag of a tabular cell."""
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"


class AuditAction(str, Enum):
    """Type of audit action."""
    FILE_RECEIVED = "file_received"
    FILE_REJECTED = "file_rejected"
    COLUMNS_MAPPED = "columns_mapped"
    COLUMNS_SNIFFED = "columns_sniffed"
    STRATEGY_APPLIED = "strategy_applied"
    ROWS_SKIPPED = "rows_skipped"
    DATE_FALLBACK = "date_fallback"
    DUPLICATES_REMOVED = "duplicates_removed"
    DUPLICATES_FOUND = "duplicates_found"
    MANUAL_REVIEW_REQUIRED = "manual_review_required"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
