"""
Tests for amount and date normalization.
"""

from datetime import date, datetime

import pytest

from statement_engine.ingestion.normalizer import (
    DateParser,
    looks_like_date,
    looks_like_number,
    parse_amount,
    parse_date,
    serial_to_date,
    try_parse_date,
)
from statement_engine.models import Cell


class TestParseAmount:

    @pytest.mark.parametrize("raw, expected", [
        ("1,234.50", 1234.5),
        ("₹1,23,456.78", 123456.78),
        ("$ 99.99", 99.99),
        ("Rs. 500", 500.0),
        ("+250", 250.0),
        ("-15000", -15000.0),
        ("(500.00)", -500.0),
        ("12.5abc", 12.5),
    ])
    def test_parses_textual_amounts(self, raw, expected):
        assert parse_amount(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "-", float("nan"), float("inf")])
    def test_unusable_input_is_zero(self, raw):
        assert parse_amount(raw) == 0.0

    def test_numbers_and_cells(self):
        assert parse_amount(42) == 42.0
        assert parse_amount(Cell.of(1500.25)) == 1500.25
        assert parse_amount(Cell.of("2,000")) == 2000.0
        assert parse_amount(Cell.of(None)) == 0.0

    @pytest.mark.parametrize("raw, expected", [
        (10**400, 0.0),
        (-(10**400), 0.0),
        (-1e20, -1e20),
        (Cell.of(10**400), 0.0),
    ])
    def test_huge_numbers_never_raise(self, raw, expected):
        assert parse_amount(raw) == expected
        assert looks_like_number(10**400) is False

    def test_looks_like_number(self):
        assert looks_like_number("1,234.00")
        assert looks_like_number("(50)")
        assert looks_like_number(Cell.of(3.5))
        assert not looks_like_number("12 Jan")
        assert not looks_like_number("TXN1234")
        assert not looks_like_number("")


class TestParseDate:

    def test_spreadsheet_serial_date(self):
        assert parse_date(45000) == "2023-03-15"
        assert serial_to_date(45000.75) == date(2023, 3, 15)

    def test_serial_in_cell(self):
        assert parse_date(Cell.of(45000)) == "2023-03-15"

    @pytest.mark.parametrize("raw", [
        "15/03/2023",
        "15-03-2023",
        "15.03.23",
        "2023-03-15",
        "2023-03-15 10:30:00",
        "15 Mar 2023",
        "15-Mar-23",
        "15 March, 2023",
        "March 15, 2023",
    ])
    def test_textual_formats(self, raw):
        assert parse_date(raw) == "2023-03-15"

    def test_month_first_when_day_position_exceeds_twelve(self):
        assert parse_date("03/15/2023") == "2023-03-15"

    def test_datetime_values(self):
        assert parse_date(datetime(2024, 2, 29, 13, 0)) == "2024-02-29"
        assert parse_date(date(2024, 1, 1)) == "2024-01-01"

    def test_unparseable_falls_back_to_today(self, today):
        assert parse_date("not a date", today=today) == today.isoformat()
        assert parse_date(None, today=today) == today.isoformat()

    @pytest.mark.parametrize("raw", [10**400, -(10**400), -1e20, 1e20])
    def test_out_of_range_serials_fall_back(self, raw, today):
        assert try_parse_date(raw) is None
        assert parse_date(raw, today=today) == today.isoformat()

    def test_negative_serial_counts_back_from_epoch(self):
        assert parse_date(-5) == "1899-12-25"

    def test_bare_number_text_is_not_a_date(self):
        assert try_parse_date("123456") is None

    def test_invalid_calendar_date(self):
        assert try_parse_date("31/02/2023") is None

    def test_looks_like_date_needs_explicit_shape(self):
        assert looks_like_date("01/02/2024")
        assert looks_like_date(Cell.of("2024-02-01"))
        assert not looks_like_date("Salary")
        assert not looks_like_date(Cell.of(45000))


class TestDateParser:

    def test_counts_fallbacks(self, today):
        parser = DateParser(today=today)

        assert parser("2024-01-05") == "2024-01-05"
        assert parser("garbage") == today.isoformat()
        assert parser("") == today.isoformat()

        assert parser.fallback_count == 2
        assert parser.warnings == []

    def test_strict_mode_keeps_values_as_warnings(self, today):
        parser = DateParser(today=today, strict=True)
        parser("someday")

        assert parser.fallback_count == 1
        assert parser.warnings == ["Unparseable date replaced with current date: 'someday'"]
