"""
Column inference for tabular bank statements.

Headers are matched against an ordered synonym table; when the header row
carries neither a date nor a description column, the first data rows are
sniffed instead.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..errors import MissingColumnError
from ..models import Cell, ColumnRole, RawRow, cell_at
from .normalizer import looks_like_date, looks_like_number

logger = structlog.get_logger()


# Roles are tried in this order; the first role with a matching pattern wins.
COLUMN_SYNONYMS: Mapping[ColumnRole, Tuple[str, ...]] = MappingProxyType({
    ColumnRole.DATE: (
        "date", "txn date", "tran date", "trans date", "value date",
        "posting date", "entry date", "transaction time", "processed date",
    ),
    ColumnRole.DESCRIPTION: (
        "description", "narration", "particulars", "details", "remarks",
        "transaction name", "narrative", "memo", "note",
    ),
    ColumnRole.PAYMENT_TYPE: (
        "payment type", "transaction type", "txn type", "type", "channel",
    ),
    ColumnRole.PAYMENT_METHOD: (
        "payment method", "method", "mode",
    ),
    ColumnRole.CREDIT: (
        "credit", "deposit", "receipt", "inflow", "income", "money in",
        "paid in", "cr",
    ),
    ColumnRole.DEBIT: (
        "debit", "withdrawal", "payment", "outflow", "expense", "money out",
        "paid out", "dr",
    ),
    ColumnRole.BALANCE: (
        "balance", "closing bal", "running bal", "available bal", "bal",
    ),
    ColumnRole.AMOUNT: (
        "amount", "amt", "value", "total",
    ),
    ColumnRole.REFERENCE_ID: (
        "reference", "transaction id", "txn id", "cheque no", "chq", "utr", "ref",
    ),
    ColumnRole.ACCOUNT_NO: (
        "account no", "account number", "account", "a/c", "acct",
    ),
    ColumnRole.CUSTOMER: (
        "customer", "client", "party", "payee", "beneficiary", "name",
    ),
})

# Headers containing these are identifiers, never amounts or dates.
EXCLUDED_HEADER_WORDS = ("branch", "code")

REQUIRED_AMOUNT_ROLES = (ColumnRole.CREDIT, ColumnRole.DEBIT, ColumnRole.AMOUNT)

CREDIT_HEADER_WORDS = ("credit", "deposit", "receipt", "inflow", "income", "cr")
DEBIT_HEADER_WORDS = ("debit", "withdrawal", "payment", "outflow", "expense", "dr")

TOKEN_SPLIT_PATTERN = re.compile(r"[\s_\-/().:#]+")

# Digit strings longer than this are account or reference numbers
MAX_AMOUNT_DIGITS = 10


@dataclass(frozen=True)
class ColumnMapping:
    """Immutable role assignment for one header set."""
    headers: Tuple[str, ...] = ()
    roles: Tuple[Tuple[ColumnRole, int], ...] = ()
    sniffed: bool = False

    def index_of(self, role: ColumnRole) -> Optional[int]:
        for mapped_role, index in self.roles:
            if mapped_role == role:
                return index
        return None

    def role_of(self, index: int) -> Optional[ColumnRole]:
        for role, mapped_index in self.roles:
            if mapped_index == index:
                return role
        return None

    def has(self, role: ColumnRole) -> bool:
        return self.index_of(role) is not None

    def as_dict(self) -> Dict[str, int]:
        return {role.value: index for role, index in self.roles}

    def missing_required(self) -> List[str]:
        missing = []
        if not self.has(ColumnRole.DATE):
            missing.append(ColumnRole.DATE.value)
        if not any(self.has(role) for role in REQUIRED_AMOUNT_ROLES):
            missing.append("amount")
        return missing

    def with_role(self, role: ColumnRole, index: int) -> "ColumnMapping":
        return ColumnMapping(
            headers=self.headers,
            roles=self.roles + ((role, index),),
            sniffed=self.sniffed,
        )


def normalize_header(header: object) -> str:
    text = "" if header is None else str(header)
    text = text.lower().replace("_", " ").strip()
    return re.sub(r"\s+", " ", text)


def header_matches(header: str, pattern: str) -> bool:
    """
    Match a normalized header against one synonym.

    Short alphanumeric synonyms ("cr", "dr", "amt", "ref") must be a whole
    token so that "description" never matches "cr".
    """
    if len(pattern) > 3 or not pattern.isalnum():
        return pattern in header
    return pattern in TOKEN_SPLIT_PATTERN.split(header)


def match_role(header: str) -> Optional[ColumnRole]:
    """First role whose synonym list matches the normalized header."""
    if not header or _is_excluded(header):
        return None
    for role, patterns in COLUMN_SYNONYMS.items():
        if any(header_matches(header, pattern) for pattern in patterns):
            return role
    return None


def _is_excluded(header: str) -> bool:
    return any(word in header for word in EXCLUDED_HEADER_WORDS)


def map_columns(headers: Sequence[object]) -> ColumnMapping:
    """Map header cells to column roles. Deterministic for a given header list."""
    header_texts = tuple(str(h) if h is not None else "" for h in headers)
    roles: List[Tuple[ColumnRole, int]] = []
    taken = set()

    for index, header in enumerate(header_texts):
        role = match_role(normalize_header(header))
        if role is None:
            continue
        if role in taken:
            logger.debug("Column role already mapped", header=header, role=role.value)
            continue
        taken.add(role)
        roles.append((role, index))

    mapping = ColumnMapping(headers=header_texts, roles=tuple(roles))
    logger.info("Columns mapped", mapping=mapping.as_dict(), headers=list(header_texts))
    return mapping


def needs_sniffing(mapping: ColumnMapping) -> bool:
    return not mapping.has(ColumnRole.DATE) and not mapping.has(ColumnRole.DESCRIPTION)


def sniff_columns(
    mapping: ColumnMapping,
    rows: Sequence[RawRow],
    sample_size: int = 3,
) -> ColumnMapping:
    """
    Assign roles to unmapped columns from the content of the first data rows.

    Only applies when the header mapping has neither a date nor a
    description column; otherwise the mapping is returned unchanged.
    """
    if not needs_sniffing(mapping):
        return mapping

    sample = list(rows[:sample_size])
    width = max([len(mapping.headers)] + [len(row) for row in sample])
    result = ColumnMapping(headers=mapping.headers, roles=mapping.roles, sniffed=True)

    for index in range(width):
        header = _header_at(mapping, index)
        if result.role_of(index) is not None or _is_excluded(normalize_header(header)):
            continue
        cells = [cell_at(row, index) for row in sample]
        cells = [cell for cell in cells if not cell.is_empty]
        if not cells:
            continue

        role = _sniff_role(cells, header, result)
        if role is not None:
            result = result.with_role(role, index)

    logger.info("Columns sniffed from content", mapping=result.as_dict())
    return result


def _sniff_role(
    cells: List[Cell],
    header: str,
    mapping: ColumnMapping,
) -> Optional[ColumnRole]:
    majority = len(cells) / 2

    date_votes = sum(1 for cell in cells if looks_like_date(cell))
    if date_votes > majority:
        return None if mapping.has(ColumnRole.DATE) else ColumnRole.DATE

    number_votes = sum(
        1 for cell in cells
        if looks_like_number(cell) and not _looks_like_identifier(cell)
    )
    if number_votes > majority:
        return _amount_role_for_header(header, mapping)

    text_votes = sum(
        1 for cell in cells
        if cell.is_text and len(cell.text) > 3
        and not looks_like_number(cell) and not looks_like_date(cell)
    )
    if text_votes > majority and not mapping.has(ColumnRole.DESCRIPTION):
        return ColumnRole.DESCRIPTION

    return None


def _amount_role_for_header(header: str, mapping: ColumnMapping) -> Optional[ColumnRole]:
    normalized = normalize_header(header)
    if any(header_matches(normalized, word) for word in DEBIT_HEADER_WORDS):
        preferred = (ColumnRole.DEBIT, ColumnRole.CREDIT)
    elif any(header_matches(normalized, word) for word in CREDIT_HEADER_WORDS):
        preferred = (ColumnRole.CREDIT, ColumnRole.DEBIT)
    else:
        preferred = (ColumnRole.CREDIT, ColumnRole.DEBIT)

    for role in preferred:
        if not mapping.has(role):
            return role
    return None


def _looks_like_identifier(cell: Cell) -> bool:
    if not cell.is_text:
        return False
    compact = cell.text.replace(" ", "")
    return compact.isdigit() and len(compact) > MAX_AMOUNT_DIGITS


def _header_at(mapping: ColumnMapping, index: int) -> str:
    if index < len(mapping.headers):
        return mapping.headers[index]
    return ""


def validate_mapping(mapping: ColumnMapping, filename: str) -> None:
    """Raise MissingColumnError when the date or every amount column is absent."""
    available = ", ".join(h for h in mapping.headers if h) or "(none)"

    if not mapping.has(ColumnRole.DATE):
        raise MissingColumnError(
            f"{filename}: Date column not found. Available columns: {available}"
        )
    if not any(mapping.has(role) for role in REQUIRED_AMOUNT_ROLES):
        raise MissingColumnError(
            f"{filename}: No amount columns found. Looking for: credit, debit, "
            f"or amount columns. Available columns: {available}"
        )


def suggest_mappings(headers: Sequence[object]) -> Dict[str, List[str]]:
    """
    Candidate roles for headers that did not map on their own.

    A header is a candidate for a role when it contains, or is contained
    in, one of that role's synonyms.
    """
    suggestions: Dict[str, List[str]] = {}
    for header in headers:
        raw = "" if header is None else str(header)
        normalized = normalize_header(raw)
        if not normalized or match_role(normalized) is not None:
            continue

        candidates: List[str] = []
        for role, patterns in COLUMN_SYNONYMS.items():
            if any(pattern in normalized or normalized in pattern for pattern in patterns):
                if role.value not in candidates:
                    candidates.append(role.value)
        if candidates:
            suggestions[raw] = candidates
    return suggestions
