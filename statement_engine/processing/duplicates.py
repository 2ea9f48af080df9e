"""
Weighted duplicate scoring for transactions.

The same scorer backs intra-batch fuzzy dedup and the check against
already persisted records before insert.
"""

import re
from typing import List, Optional, Sequence, Set, Tuple

import structlog
from rapidfuzz.distance import Levenshtein

from ..config import Settings, get_settings
from ..integrations.repository import TransactionRepository
from ..models import (
    DuplicateCheck,
    DuplicateMatch,
    DuplicateReport,
    PersistedDuplicate,
    PersistenceReport,
    Transaction,
)

logger = structlog.get_logger()


# Rubric weights, out of 100
DATE_WEIGHT = 25
AMOUNT_WEIGHT = 30
NAME_WEIGHT = 25
SIMILAR_NAME_WEIGHT = 20
PAYMENT_TYPE_WEIGHT = 10
CATEGORY_WEIGHT = 10

DUPLICATE_THRESHOLD = 80
AMOUNT_TOLERANCE = 0.01
SIMILARITY_THRESHOLD = 0.8

PAYMENT_REFERENCE_PATTERN = re.compile(r"\b(?:imps|upi|neft|rtgs)/\d+\b", re.I)
NUMERIC_ID_PATTERN = re.compile(r"\b\w+\d{4,}\b")


def normalize_description(text: Optional[str]) -> str:
    """Lower-case and strip payment references, numeric ids and punctuation."""
    if not text:
        return ""
    normalized = text.lower().strip()
    normalized = PAYMENT_REFERENCE_PATTERN.sub("", normalized)
    normalized = NUMERIC_ID_PATTERN.sub("", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    normalized = re.sub(r"[^\w\s]", "", normalized)
    return normalized.strip()


def description_similarity(a: str, b: str) -> float:
    """Levenshtein ratio (max_len - distance) / max_len; 0 when either is empty."""
    if not a or not b:
        return 0.0
    return Levenshtein.normalized_similarity(a, b)


def score(
    a: Transaction,
    b: Transaction,
    tolerance: float = AMOUNT_TOLERANCE,
    threshold: int = DUPLICATE_THRESHOLD,
    similarity_threshold: float = SIMILARITY_THRESHOLD,
) -> DuplicateCheck:
    """Additive confidence that two transactions are the same event."""
    confidence = 0
    reasons = []

    if a.date == b.date:
        confidence += DATE_WEIGHT
    else:
        reasons.append("Dates differ")

    if abs(a.net_amount - b.net_amount) <= tolerance:
        confidence += AMOUNT_WEIGHT
    else:
        reasons.append(f"Amounts differ: {a.net_amount} vs {b.net_amount}")

    name_a = normalize_description(a.transaction_name)
    name_b = normalize_description(b.transaction_name)
    if name_a == name_b:
        confidence += NAME_WEIGHT
    elif description_similarity(name_a, name_b) > similarity_threshold:
        confidence += SIMILAR_NAME_WEIGHT
    else:
        reasons.append(f'Names differ: "{a.transaction_name}" vs "{b.transaction_name}"')

    if a.payment_type == b.payment_type:
        confidence += PAYMENT_TYPE_WEIGHT
    else:
        reasons.append("Payment types differ")

    if a.category == b.category:
        confidence += CATEGORY_WEIGHT
    else:
        reasons.append("Categories differ")

    return DuplicateCheck(
        is_duplicate=confidence >= threshold,
        confidence=confidence,
        reasons=reasons,
    )


def _exact_key(t: Transaction) -> Tuple[str, float, str]:
    return (t.date, round(t.net_amount, 2), t.transaction_name.lower())


def _scan(
    transactions: Sequence[Transaction],
    settings: Settings,
) -> Tuple[DuplicateReport, Set[int]]:
    report = DuplicateReport()
    flagged: Set[int] = set()

    for i, original in enumerate(transactions):
        if i in flagged:
            continue
        for j in range(i + 1, len(transactions)):
            if j in flagged:
                continue
            candidate = transactions[j]

            if _exact_key(original) == _exact_key(candidate):
                report.exact.append(DuplicateMatch(
                    original=original,
                    duplicate=candidate,
                    confidence=100,
                    match_type="exact",
                    reasons=["Same date, amount, and transaction name"],
                ))
                flagged.add(j)
                continue

            check = score(
                original,
                candidate,
                tolerance=settings.amount_tolerance,
                threshold=settings.duplicate_threshold,
                similarity_threshold=settings.description_similarity_threshold,
            )
            if check.is_duplicate:
                report.fuzzy.append(DuplicateMatch(
                    original=original,
                    duplicate=candidate,
                    confidence=check.confidence,
                    match_type="fuzzy",
                    reasons=check.reasons,
                ))
                flagged.add(j)

    return report, flagged


def find_duplicates(
    transactions: Sequence[Transaction],
    settings: Optional[Settings] = None,
) -> DuplicateReport:
    """Pairwise intra-batch duplicates; the earlier transaction is the original."""
    report, _ = _scan(transactions, settings or get_settings())
    if report.all:
        logger.info("Duplicates detected", **report.summary())
    return report


def remove_duplicates(
    transactions: Sequence[Transaction],
    settings: Optional[Settings] = None,
) -> List[Transaction]:
    """Drop every transaction flagged as the duplicate side of a pair."""
    _, flagged = _scan(transactions, settings or get_settings())
    return [t for i, t in enumerate(transactions) if i not in flagged]


class DuplicateGuard:
    """
    Inserts transactions through a repository, skipping near-duplicates of
    records already stored.

    Candidates are fetched by exact date and payment type, then scored.
    A failing lookup is logged and the transaction is treated as unique.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()

    def find_existing(self, transaction: Transaction) -> Optional[PersistedDuplicate]:
        """Best-scoring stored duplicate of a transaction, if any."""
        try:
            candidates = self.repository.query_by_date_and_payment_type(
                transaction.date, transaction.payment_type
            )
        except Exception as e:
            logger.warning(
                "Duplicate lookup failed, treating transaction as unique",
                transaction_id=transaction.id,
                error=str(e),
            )
            return None

        best: Optional[PersistedDuplicate] = None
        for existing in candidates or []:
            check = score(
                transaction,
                existing,
                tolerance=self.settings.amount_tolerance,
                threshold=self.settings.duplicate_threshold,
                similarity_threshold=self.settings.description_similarity_threshold,
            )
            if check.is_duplicate and (best is None or check.confidence > best.confidence):
                best = PersistedDuplicate(
                    transaction=transaction,
                    existing_id=existing.id,
                    confidence=check.confidence,
                    reasons=check.reasons,
                )
        return best

    def check_existing(
        self,
        transactions: Sequence[Transaction],
    ) -> Tuple[List[PersistedDuplicate], List[Transaction]]:
        """Split transactions into stored duplicates and unique ones."""
        duplicates = []
        unique = []
        for transaction in transactions:
            match = self.find_existing(transaction)
            if match is None:
                unique.append(transaction)
            else:
                duplicates.append(match)
        return duplicates, unique

    def insert_with_deduplication(self, transactions: Sequence[Transaction]) -> PersistenceReport:
        """
        Insert in chunks of ``persistence_batch_size``.

        Each transaction is checked right before its insert, so a batch that
        repeats a transaction stores it once.
        """
        report = PersistenceReport(total_processed=len(transactions))
        batch_size = max(1, self.settings.persistence_batch_size)

        for start in range(0, len(transactions), batch_size):
            chunk = transactions[start:start + batch_size]
            logger.info(
                "Persisting batch",
                batch=start // batch_size + 1,
                size=len(chunk),
                total=len(transactions),
            )

            for transaction in chunk:
                match = self.find_existing(transaction)
                if match is not None:
                    logger.info(
                        "Duplicate transaction skipped",
                        name=transaction.transaction_name,
                        existing_id=match.existing_id,
                        confidence=match.confidence,
                    )
                    report.duplicates.append(match)
                    continue

                try:
                    report.inserted_ids.append(self.repository.insert(transaction))
                except Exception as e:
                    logger.error("Transaction insert failed", transaction_id=transaction.id, error=str(e))
                    report.errors.append(f"Database insertion error: {e}")

        logger.info(
            "Persistence finished",
            inserted=report.inserted,
            duplicates=len(report.duplicates),
            errors=len(report.errors),
        )
        return report
