"""
Amount and date normalization for heterogeneous statement values.

Both parse_amount and parse_date are total: they never raise and always
return a usable value (0.0 / an ISO date). Callers treat a 0.0 amount as
"no usable amount".
"""

import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

import structlog
from dateutil import parser as date_parser

from ..models import Cell

logger = structlog.get_logger()


# Spreadsheet serial dates count days from 1899-12-30, which absorbs the
# 1900 leap-year bug for every date after 1900-02-28.
EXCEL_EPOCH = date(1899, 12, 30)

CURRENCY_PATTERN = re.compile(r"₹|\$|€|£|¥|\bRs\.?|\bINR\b|\bUSD\b|\bEUR\b|\bGBP\b", re.I)
NUMBER_PREFIX_PATTERN = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
NUMBER_FULL_PATTERN = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)")

DMY_PATTERN = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
YMD_PATTERN = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})(?:[T\s].*)?$")
DAY_MONTH_YEAR_PATTERN = re.compile(
    r"^(\d{1,2})(?:st|nd|rd|th)?[\s\-/]+([A-Za-z]{3,9})\.?[\s,\-/]+(\d{2}|\d{4})$"
)

MONTH_MAP = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

MAX_DATE_TEXT_LENGTH = 64


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(value: Any) -> float:
    """
    Parse a monetary value into a float.

    Strips currency symbols, thousands separators, plus signs and
    whitespace. Surrounding parentheses mark a negative amount. Returns 0.0
    for empty or unparseable input.
    """
    if isinstance(value, Cell):
        if value.is_empty:
            return 0.0
        if value.is_number:
            return _finite_or_zero(value.number)
        value = value.text

    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, numbers.Real):
        return _finite_or_zero(_to_float(value))

    text = str(value).strip()
    if not text:
        return 0.0

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    cleaned = CURRENCY_PATTERN.sub("", text)
    cleaned = re.sub(r"[,+\s]", "", cleaned)

    match = NUMBER_PREFIX_PATTERN.match(cleaned)
    if not match:
        return 0.0

    try:
        amount = float(match.group(0))
    except ValueError:
        return 0.0

    if not math.isfinite(amount):
        return 0.0
    return -abs(amount) if negative else amount


def looks_like_number(value: Any) -> bool:
    """True for numeric cells and text that is entirely a (currency) number."""
    if isinstance(value, Cell):
        if value.is_number:
            return True
        value = value.text
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, numbers.Real):
        number = _to_float(value)
        return number is not None and math.isfinite(number)
    cleaned = CURRENCY_PATTERN.sub("", str(value).strip())
    cleaned = re.sub(r"[,\s]", "", cleaned).strip("()")
    return bool(cleaned) and NUMBER_FULL_PATTERN.fullmatch(cleaned) is not None


def _to_float(value: numbers.Real) -> Optional[float]:
    """None for integers too large to represent as a float."""
    try:
        return float(value)
    except OverflowError:
        return None


def _finite_or_zero(number: Optional[float]) -> float:
    if number is None or not math.isfinite(number):
        return 0.0
    return number


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def serial_to_date(serial: float) -> Optional[date]:
    """Convert a spreadsheet serial day count to a calendar date."""
    if not math.isfinite(serial):
        return None
    try:
        return EXCEL_EPOCH + timedelta(days=math.floor(serial))
    except OverflowError:
        return None


def try_parse_date(value: Any) -> Optional[date]:
    """
    Parse a date from a serial number, a known textual shape or free text.

    Returns None when nothing matches; see parse_date for the total variant.
    """
    if isinstance(value, Cell):
        if value.is_empty:
            return None
        if value.is_number:
            return serial_to_date(value.number)
        value = value.text

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Real):
        serial = _to_float(value)
        return None if serial is None else serial_to_date(serial)

    text = str(value).strip()
    if not text or len(text) > MAX_DATE_TEXT_LENGTH:
        return None

    parsed = _parse_known_shape(text)
    if parsed is not None:
        return parsed

    # Bare numbers are amounts or ids, never dates, in free text
    if NUMBER_FULL_PATTERN.fullmatch(text.replace(",", "")):
        return None

    try:
        return date_parser.parse(text, dayfirst=True, fuzzy=False).date()
    except (ValueError, OverflowError, TypeError):
        return None


def parse_date(value: Any, today: Optional[date] = None) -> str:
    """
    Parse any value into an ISO YYYY-MM-DD string.

    Unparseable input falls back to ``today`` (the current date by default).
    """
    parsed = try_parse_date(value)
    if parsed is None:
        parsed = today or date.today()
    return parsed.isoformat()


def looks_like_date(value: Any) -> bool:
    """True when text has one of the explicit date shapes and is a real date."""
    if isinstance(value, Cell):
        if not value.is_text:
            return False
        value = value.text
    if not isinstance(value, str):
        return False
    return _parse_known_shape(value.strip()) is not None


def _parse_known_shape(text: str) -> Optional[date]:
    match = DMY_PATTERN.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        year = _expand_year(year)
        if month > 12 and day <= 12:
            # MM/DD/YYYY
            day, month = month, day
        return _safe_date(year, month, day)

    match = YMD_PATTERN.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    match = DAY_MONTH_YEAR_PATTERN.match(text)
    if match:
        day = int(match.group(1))
        month = _month_number(match.group(2))
        year = _expand_year(int(match.group(3)))
        if month:
            return _safe_date(year, month, day)

    return None


def _month_number(name: str) -> int:
    name = name.lower()
    return MONTH_MAP.get(name, MONTH_MAP.get(name[:3], 0))


def _expand_year(year: int) -> int:
    return 2000 + year if year < 100 else year


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


class DateParser:
    """
    Total date parser that counts fallbacks for one extraction run.

    Every fallback is logged; with strict=True the offending values are also
    kept so the pipeline can surface them as warnings.
    """

    def __init__(self, today: Optional[date] = None, strict: bool = False):
        self.today = today
        self.strict = strict
        self.fallback_count = 0
        self.fallback_values: List[str] = []

    def __call__(self, value: Any) -> str:
        parsed = try_parse_date(value)
        if parsed is not None:
            return parsed.isoformat()

        self.fallback_count += 1
        raw = str(value)[:50]
        if self.strict:
            self.fallback_values.append(raw)
        logger.warning("Unparseable date, using current date", value=raw)
        return (self.today or date.today()).isoformat()

    @property
    def warnings(self) -> List[str]:
        return [f"Unparseable date replaced with current date: {v!r}" for v in self.fallback_values]
