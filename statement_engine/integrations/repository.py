"""
Persistence collaborator interface for extracted transactions.
"""

from typing import Dict, List, Protocol

import structlog

from ..models import Transaction

logger = structlog.get_logger()


class TransactionRepository(Protocol):
    """Storage the duplicate guard writes through."""

    def insert(self, transaction: Transaction) -> str:
        """Store a transaction and return its id."""
        ...

    def query_by_date_and_payment_type(self, date: str, payment_type: str) -> List[Transaction]:
        """Stored transactions with exactly this date and payment type."""
        ...


class InMemoryTransactionRepository:
    """Dictionary-backed repository for tests and single-process use."""

    def __init__(self):
        self._rows: Dict[str, Transaction] = {}

    def insert(self, transaction: Transaction) -> str:
        self._rows[transaction.id] = transaction
        logger.debug("Transaction stored", id=transaction.id, date=transaction.date)
        return transaction.id

    def query_by_date_and_payment_type(self, date: str, payment_type: str) -> List[Transaction]:
        return [
            t for t in self._rows.values()
            if t.date == date and t.payment_type == payment_type
        ]

    def get(self, transaction_id: str) -> Transaction:
        return self._rows[transaction_id]

    def all(self) -> List[Transaction]:
        return list(self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)
