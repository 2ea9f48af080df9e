"""Transaction processing: categorization, post-processing and duplicate detection."""

from .categorizer import classify, normalize_payment_type
from .duplicates import DuplicateGuard, find_duplicates, remove_duplicates, score
from .post_processor import post_process

__all__ = [
    "classify",
    "normalize_payment_type",
    "post_process",
    "score",
    "find_duplicates",
    "remove_duplicates",
    "DuplicateGuard",
]
