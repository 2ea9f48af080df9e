"""Transaction model for extracted bank statement rows."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Tuple
from uuid import uuid4

from .enums import Category, SourceType


DEFAULT_PAYMENT_TYPE = "bank_transfer"
MANUAL_ENTRY_DESCRIPTION = "Manual entry required"


@dataclass
class Transaction:
    """
    Canonical extracted unit.

    Amounts are stored as non-negative floats in statement units; exactly one
    of credit_amount/debit_amount is expected to be non-zero except for
    placeholder rows flagged with needs_manual_review.
    """
    # Identity
    id: str = field(default_factory=lambda: str(uuid4()))

    # Core fields
    date: str = ""  # ISO 8601 YYYY-MM-DD
    description: str = ""
    transaction_name: str = ""
    payment_type: str = DEFAULT_PAYMENT_TYPE
    category: Category = Category.BUSINESS_EXPENSE

    # Financial data
    credit_amount: float = 0.0
    debit_amount: float = 0.0
    balance: Optional[float] = None

    # Optional statement fields
    account_no: Optional[str] = None
    reference_id: Optional[str] = None

    # Provenance
    source_file: str = ""
    source_type: SourceType = SourceType.MANUAL
    notes: str = ""
    needs_manual_review: bool = False

    # Audit
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.transaction_name:
            self.transaction_name = self.description
        if not self.description:
            self.description = self.transaction_name

    @property
    def net_amount(self) -> float:
        """Signed amount: credits positive, debits negative."""
        return self.credit_amount - self.debit_amount

    @property
    def is_credit(self) -> bool:
        return self.credit_amount > 0

    @property
    def has_amount(self) -> bool:
        return self.credit_amount != 0 or self.debit_amount != 0

    @property
    def dedup_key(self) -> Tuple[str, float, float, str]:
        """Exact-match deduplication key."""
        return (self.date, self.credit_amount, self.debit_amount, self.description)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization and persistence."""
        return {
            "id": self.id,
            "date": self.date,
            "payment_type": self.payment_type,
            "transaction_name": self.transaction_name,
            "description": self.description,
            "category": self.category.value,
            "credit_amount": self.credit_amount,
            "debit_amount": self.debit_amount,
            "balance": self.balance,
            "account_no": self.account_no,
            "reference_id": self.reference_id,
            "source_file": self.source_file,
            "source_type": self.source_type.value,
            "notes": self.notes,
            "needs_manual_review": self.needs_manual_review,
        }
