"""
Post-processing of one extraction run: exact dedup, chronological sort and
running-balance backfill.
"""

from dataclasses import replace
from typing import List, Optional, Sequence

import structlog

from ..models import SourceType, Transaction

logger = structlog.get_logger()


def remove_exact_duplicates(transactions: Sequence[Transaction]) -> List[Transaction]:
    """Keep the first transaction per dedup key, preserving order."""
    seen = set()
    unique = []
    for transaction in transactions:
        key = transaction.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(transaction)
    return unique


def sort_by_date(transactions: Sequence[Transaction]) -> List[Transaction]:
    # ISO dates sort lexicographically; sorted() is stable
    return sorted(transactions, key=lambda t: t.date)


def backfill_balance(transactions: Sequence[Transaction]) -> List[Transaction]:
    """
    Recompute every balance from zero when the first transaction has none.

    Only a missing balance (None) triggers this; a stated balance of 0.0
    counts as present and leaves every row untouched. Balances stated on
    later rows are overwritten too.
    """
    if not transactions or transactions[0].balance is not None:
        return list(transactions)

    balance = 0.0
    result = []
    for transaction in transactions:
        balance += transaction.credit_amount - transaction.debit_amount
        result.append(replace(transaction, balance=round(balance, 2)))
    return result


def post_process(
    transactions: Sequence[Transaction],
    filename: Optional[str] = None,
    source_type: Optional[SourceType] = None,
) -> List[Transaction]:
    """
    Dedup, sort and backfill balances. Returns a new list; idempotent.

    ``filename`` and ``source_type`` fill provenance left empty by the
    extractor.
    """
    unique = remove_exact_duplicates(transactions)
    ordered = sort_by_date(unique)
    result = backfill_balance(ordered)

    if filename or source_type:
        result = [
            replace(
                t,
                source_file=t.source_file or filename or "",
                source_type=source_type if source_type and t.source_type == SourceType.MANUAL else t.source_type,
            )
            for t in result
        ]

    removed = len(transactions) - len(unique)
    if removed:
        logger.info("Exact duplicates removed", filename=filename, removed=removed)
    return result
