"""
Transaction extraction from free text (PDF text layers and OCR output).

Each strategy implements ``try_extract(text, context)`` and returns None
when it does not apply, so callers can walk an ordered cascade:
structured statement table -> generic line patterns -> manual placeholder.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import structlog

from ..models import (
    DEFAULT_PAYMENT_TYPE,
    ExtractionOutcome,
    MANUAL_ENTRY_DESCRIPTION,
    Category,
    SourceType,
    Transaction,
)
from ..processing.categorizer import classify, normalize_payment_type
from .normalizer import DateParser, looks_like_number, parse_amount, try_parse_date

logger = structlog.get_logger()


NUMERIC_DATE = r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}|\d{4}-\d{1,2}-\d{1,2}"
WORDY_DATE = r"\d{1,2}\s+[A-Za-z]{3,9}\.?,?\s+\d{2,4}"
COMMA_DATE = r"\d{1,2}\s+[A-Za-z]{3,9}\s*,\s*\d{2,4}"
AMOUNT = r"[+-]?\s?(?:₹|Rs\.?|INR|\$)?\s?(?:\d{1,3}(?:,\d{2,3})+|\d+)(?:\.\d{1,2})?"
DIRECTION = r"(?:\s*(?:cr|dr)\.?)?"


def _line_pattern(date_pattern: str, with_balance: bool) -> "re.Pattern":
    tail = rf"\s+(?P<balance>{AMOUNT}{DIRECTION})" if with_balance else ""
    return re.compile(
        rf"^(?P<date>{date_pattern})\s+(?P<description>.+?)\s+"
        rf"(?P<amount>{AMOUNT}{DIRECTION}){tail}$",
        re.I,
    )


# Tried in order; the first match wins.
LINE_PATTERNS: Sequence["re.Pattern"] = (
    _line_pattern(NUMERIC_DATE, with_balance=True),
    _line_pattern(NUMERIC_DATE, with_balance=False),
    re.compile(
        rf"^(?P<date>{COMMA_DATE})\s+(?P<payment_type>\w+)\s+(?P<description>.+?)\s+"
        rf"(?P<category>\w+)\s+(?P<amount>{AMOUNT}{DIRECTION})$",
        re.I,
    ),
    _line_pattern(WORDY_DATE, with_balance=True),
    _line_pattern(WORDY_DATE, with_balance=False),
)

SECTION_START_MARKER = "transactions based on applied selections"
SECTION_END_PATTERN = re.compile(r"important message|\bpage\b|\btotal\b", re.I)
COLUMN_SPLIT_PATTERN = re.compile(r"\s{2,}|\t+")

STATEMENT_PERIOD_PATTERN = re.compile(
    r"(\d{1,2}\s+\w+,?\s+\d{4})\s+to\s+(\d{1,2}\s+\w+,?\s+\d{4})", re.I
)
UPTO_PATTERN = re.compile(r"upto\s+(\d{1,2}\s+\w+,?\s+\d{4})", re.I)
ACCOUNT_PATTERN = re.compile(r"account[s]?\s*(?:no\.?|number)?\s*:\s*([a-zA-Z0-9 ]+)", re.I)


@dataclass
class ExtractionContext:
    """Per-file state shared by the strategies of one extraction run."""
    filename: str
    source_type: SourceType
    date_parser: DateParser = field(default_factory=DateParser)
    processed_lines: int = 0
    skipped_lines: int = 0


def is_credit_marker(amount_text: str) -> Optional[bool]:
    """True for +/Cr, False for -/Dr, None when the text carries no direction."""
    text = amount_text.strip().lower()
    if text.endswith(("cr", "cr.")) or text.startswith("+"):
        return True
    if text.endswith(("dr", "dr.")) or text.startswith("-"):
        return False
    return None


def _strip_direction(amount_text: str) -> str:
    return re.sub(r"\s*(?:cr|dr)\.?$", "", amount_text.strip(), flags=re.I)


def _is_amount_cell(part: str) -> bool:
    # "-" marks an empty debit or credit column
    return part == "-" or looks_like_number(part)


def _build_transaction(
    context: ExtractionContext,
    raw_date: str,
    description: str,
    amount: float,
    is_credit: bool,
    payment_type: str = DEFAULT_PAYMENT_TYPE,
    balance: Optional[float] = None,
    notes: str = "",
) -> Transaction:
    description = description.strip() or "Unknown Transaction"
    return Transaction(
        date=context.date_parser(raw_date),
        description=description,
        transaction_name=description,
        payment_type=payment_type,
        category=classify(description, payment_type),
        credit_amount=amount if is_credit else 0.0,
        debit_amount=0.0 if is_credit else amount,
        balance=balance,
        source_file=context.filename,
        source_type=context.source_type,
        notes=notes or f"Extracted from {context.source_type.value} file",
    )


class LinePatternStrategy:
    """Generic "date description amount [balance]" line matcher."""

    name = "line_pattern"

    def try_extract(self, text: str, context: ExtractionContext) -> Optional[List[Transaction]]:
        transactions = []
        for line in split_lines(text):
            transaction = self.parse_line(line, context)
            if transaction is None:
                context.skipped_lines += 1
                continue
            context.processed_lines += 1
            transactions.append(transaction)

        logger.debug(
            "Line pattern extraction",
            filename=context.filename,
            matched=len(transactions),
            skipped=context.skipped_lines,
        )
        return transactions or None

    def parse_line(self, line: str, context: ExtractionContext) -> Optional[Transaction]:
        for pattern in LINE_PATTERNS:
            match = pattern.match(line)
            if not match:
                continue

            groups = match.groupdict()
            if try_parse_date(groups["date"]) is None:
                continue

            amount_text = groups["amount"]
            amount = parse_amount(_strip_direction(amount_text))
            if amount == 0:
                continue

            direction = is_credit_marker(amount_text)
            is_credit = amount > 0 if direction is None else direction

            payment_type = DEFAULT_PAYMENT_TYPE
            if groups.get("payment_type"):
                payment_type = normalize_payment_type(groups["payment_type"])

            balance = None
            if groups.get("balance"):
                balance = parse_amount(_strip_direction(groups["balance"]))

            return _build_transaction(
                context,
                raw_date=groups["date"],
                description=groups["description"],
                amount=abs(amount),
                is_credit=is_credit,
                payment_type=payment_type,
                balance=balance,
            )
        return None


class StructuredStatementStrategy:
    """
    Parser for column-aligned statement tables.

    The table starts at the "transactions based on applied selections"
    marker or at a header line naming both date and amount, and ends at the
    first "important message", page or total line. Rows are split on runs
    of two or more spaces or tabs.
    """

    name = "structured_statement"

    def try_extract(self, text: str, context: ExtractionContext) -> Optional[List[Transaction]]:
        in_section = False
        transactions = []

        for line in split_lines(text):
            lowered = line.lower()

            if not in_section:
                if SECTION_START_MARKER in lowered or ("date" in lowered and "amount" in lowered):
                    in_section = True
                continue

            if SECTION_END_PATTERN.search(lowered):
                break
            # Repeated header rows on later pages
            if "date" in lowered and not _starts_with_date(line):
                continue

            transaction = self.parse_row(line, context)
            if transaction is None:
                context.skipped_lines += 1
                continue
            context.processed_lines += 1
            transactions.append(transaction)

        if not in_section:
            return None

        logger.debug(
            "Structured statement extraction",
            filename=context.filename,
            matched=len(transactions),
        )
        return transactions or None

    def parse_row(self, line: str, context: ExtractionContext) -> Optional[Transaction]:
        parts = [part.strip() for part in COLUMN_SPLIT_PATTERN.split(line) if part.strip()]
        if len(parts) < 3 or try_parse_date(parts[0]) is None:
            return None

        for layout in (self._typed_layout, self._debit_credit_layout, self._generic_layout):
            transaction = layout(parts, context)
            if transaction is not None:
                return transaction
        return None

    @staticmethod
    def _typed_layout(parts: List[str], context: ExtractionContext) -> Optional[Transaction]:
        # date | payment type | name | ... | amount
        if len(parts) < 5 or any(_is_amount_cell(p) for p in (parts[1], parts[2], parts[-2])):
            return None
        amount_text = parts[-1]
        if not looks_like_number(_strip_direction(amount_text)):
            return None
        amount = abs(parse_amount(_strip_direction(amount_text)))
        if amount == 0:
            return None

        lowered = amount_text.lower()
        is_credit = "+" in amount_text or "cr" in lowered
        return _build_transaction(
            context,
            raw_date=parts[0],
            description=parts[2],
            amount=amount,
            is_credit=is_credit,
            payment_type=normalize_payment_type(parts[1]),
        )

    @staticmethod
    def _debit_credit_layout(parts: List[str], context: ExtractionContext) -> Optional[Transaction]:
        # date | description | debit | credit [| balance]
        if len(parts) < 4 or not all(_is_amount_cell(p) for p in parts[2:]):
            return None
        debit = abs(parse_amount(parts[2]))
        credit = abs(parse_amount(parts[3]))
        if debit == 0 and credit == 0:
            return None

        balance = parse_amount(parts[4]) if len(parts) > 4 else None
        is_credit = credit > 0
        return _build_transaction(
            context,
            raw_date=parts[0],
            description=parts[1],
            amount=credit if is_credit else debit,
            is_credit=is_credit,
            balance=balance,
        )

    @staticmethod
    def _generic_layout(parts: List[str], context: ExtractionContext) -> Optional[Transaction]:
        # date | description | first amount-like part
        for amount_text in parts[2:]:
            if not looks_like_number(_strip_direction(amount_text)):
                continue
            amount = parse_amount(_strip_direction(amount_text))
            if amount == 0:
                continue
            direction = is_credit_marker(amount_text)
            return _build_transaction(
                context,
                raw_date=parts[0],
                description=parts[1],
                amount=abs(amount),
                is_credit=amount > 0 if direction is None else direction,
            )
        return None


class PlaceholderStrategy:
    """Last resort: one zero-amount row a human has to fill in."""

    name = "placeholder"

    def __init__(self, today: Optional[date] = None):
        self.today = today

    def try_extract(self, text: str, context: ExtractionContext) -> Optional[List[Transaction]]:
        logger.warning("No transactions recognised, emitting placeholder", filename=context.filename)
        return [
            Transaction(
                date=(self.today or date.today()).isoformat(),
                description=MANUAL_ENTRY_DESCRIPTION,
                transaction_name=MANUAL_ENTRY_DESCRIPTION,
                category=Category.BUSINESS_EXPENSE,
                source_file=context.filename,
                source_type=context.source_type,
                notes=f"Automatic extraction failed for {context.filename}; enter transactions manually",
                needs_manual_review=True,
            )
        ]


def _starts_with_date(line: str) -> bool:
    first = COLUMN_SPLIT_PATTERN.split(line.strip(), maxsplit=1)[0]
    return try_parse_date(first) is not None


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def extract_statement_details(text: str) -> Dict[str, str]:
    """Statement period and account number, when the text states them."""
    details: Dict[str, str] = {}
    for line in split_lines(text):
        if "statement_period" not in details:
            match = STATEMENT_PERIOD_PATTERN.search(line)
            if match:
                details["statement_period"] = f"{match.group(1)} to {match.group(2)}"
            else:
                match = UPTO_PATTERN.search(line)
                if match:
                    details["statement_period"] = f"Upto {match.group(1)}"

        if "account_number" not in details:
            match = ACCOUNT_PATTERN.search(line)
            if match and match.group(1).strip():
                details["account_number"] = match.group(1).strip()

        if len(details) == 2:
            break
    return details


def apply_strategies(
    text: str,
    strategies: Sequence,
    context: ExtractionContext,
) -> Optional[ExtractionOutcome]:
    """
    Run strategies in order and return the first non-empty result.

    A strategy that raises is logged and the next one is tried.
    """
    for strategy in strategies:
        context.processed_lines = 0
        context.skipped_lines = 0
        try:
            transactions = strategy.try_extract(text, context)
        except Exception as e:
            logger.warning(
                "Extraction strategy failed",
                filename=context.filename,
                strategy=strategy.name,
                error=str(e),
            )
            continue

        if not transactions:
            logger.debug("Extraction strategy not applicable", filename=context.filename, strategy=strategy.name)
            continue

        logger.info(
            "Extraction strategy applied",
            filename=context.filename,
            strategy=strategy.name,
            transactions=len(transactions),
        )
        return ExtractionOutcome(
            transactions=transactions,
            total_rows=context.processed_lines + context.skipped_lines,
            processed_rows=context.processed_lines,
            skipped_rows=context.skipped_lines,
            date_fallbacks=context.date_parser.fallback_count,
            strategy=strategy.name,
            extracted_text=text,
            statement_details=extract_statement_details(text),
            warnings=context.date_parser.warnings,
        )
    return None
