"""
Tests for Excel and CSV extraction.
"""

import io

import pytest
from openpyxl import Workbook

from statement_engine.errors import ExtractionError, MissingColumnError, NoTransactionsError
from statement_engine.ingestion.tabular import CSVExtractor, ExcelExtractor, is_footer_row, select_sheet
from statement_engine.models import Category, SourceType, make_row


def build_workbook(rows, sheets=None) -> bytes:
    """Serialize rows (or {sheet: rows}) to xlsx bytes."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, sheet_rows in (sheets or {"Sheet1": rows}).items():
        sheet = workbook.create_sheet(title)
        for row in sheet_rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def csv_extractor(settings, today):
    return CSVExtractor(settings, today=today)


@pytest.fixture
def excel_extractor(settings, today):
    return ExcelExtractor(settings, today=today)


class TestCSVExtractor:

    def test_signed_amount_column(self, csv_extractor):
        data = (
            "Date,Description,Amount,Balance\n"
            "2024-01-15,Salary,50000,50000\n"
            "2024-01-16,Rent,-15000,35000\n"
        ).encode()

        outcome = csv_extractor.extract(data, "jan.csv")

        salary, rent = outcome.transactions
        assert salary.date == "2024-01-15"
        assert salary.credit_amount == 50000
        assert salary.debit_amount == 0
        assert salary.balance == 50000
        assert salary.category == Category.SALARY

        assert rent.debit_amount == 15000
        assert rent.credit_amount == 0
        assert rent.balance == 35000

        assert outcome.processed_rows == 2
        assert outcome.skipped_rows == 0
        assert outcome.strategy == "csv_columns"
        assert outcome.column_mapping == {"date": 0, "description": 1, "amount": 2, "balance": 3}

    def test_provenance(self, csv_extractor):
        data = b"Date,Description,Debit,Credit\n15/01/2024,Coffee,120,\n"

        transaction = csv_extractor.extract(data, "jan.csv").transactions[0]

        assert transaction.source_type == SourceType.CSV
        assert transaction.source_file == "jan.csv"
        assert transaction.notes == "CSV Import: jan.csv (row 2)"
        assert transaction.balance is None

    def test_debit_credit_columns_and_skipped_rows(self, csv_extractor):
        data = (
            "Txn Date,Narration,Withdrawal,Deposit,Balance\n"
            "01/02/2024,ATM cash,2000,,8000\n"
            ",,,,\n"
            "02/02/2024,Opening note,,,8000\n"
            "03/02/2024,NEFT from client,,5000,13000\n"
            "This is a computer generated statement,,,,\n"
        ).encode()

        outcome = csv_extractor.extract(data, "feb.csv")

        assert [t.description for t in outcome.transactions] == ["ATM cash", "NEFT from client"]
        assert outcome.transactions[0].debit_amount == 2000
        assert outcome.transactions[1].credit_amount == 5000
        assert outcome.processed_rows == 2
        assert outcome.skipped_rows == 3

    def test_synthetic_description_and_payment_method(self, csv_extractor):
        data = b"Date,Customer,Payment Method,Amount\n2024-03-01,Acme Ltd,UPI,1500\n2024-03-02,,,900\n"

        first, second = csv_extractor.extract(data, "sales.csv").transactions

        assert first.description == "Acme Ltd - UPI payment"
        assert first.payment_type == "upi"
        assert second.description == "Unknown - Unknown payment"
        assert second.payment_type == "bank_transfer"

    def test_row_number_description(self, csv_extractor):
        data = b"Date,Amount\n2024-03-01,100\n"

        transaction = csv_extractor.extract(data, "plain.csv").transactions[0]

        assert transaction.description == "Row 2"

    def test_unparseable_date_counts_fallback(self, csv_extractor, today):
        data = b"Date,Description,Amount\nsometime,Lunch,-250\n"

        outcome = csv_extractor.extract(data, "odd.csv")

        assert outcome.transactions[0].date == today.isoformat()
        assert outcome.date_fallbacks == 1

    def test_headerless_csv_is_sniffed(self, csv_extractor):
        data = (
            "Col A,Col B,Col C\n"
            "05/01/2024,Grocery store,450\n"
            "06/01/2024,Book shop,300\n"
        ).encode()

        outcome = csv_extractor.extract(data, "sniff.csv")

        assert outcome.columns_sniffed
        assert [t.credit_amount for t in outcome.transactions] == [450, 300]

    def test_latin1_fallback(self, csv_extractor):
        data = "Date,Description,Amount\n2024-01-01,Café payment,-12.50\n".encode("latin1")

        transaction = csv_extractor.extract(data, "latin.csv").transactions[0]

        assert transaction.description == "Café payment"
        assert transaction.debit_amount == 12.5

    def test_windows_1252_before_latin1(self, csv_extractor):
        data = "Date,Description,Amount\n2024-01-01,Card fee \u20ac2,-2.00\n".encode("cp1252")

        transaction = csv_extractor.extract(data, "windows.csv").transactions[0]

        assert transaction.description == "Card fee \u20ac2"

    def test_missing_date_column(self, csv_extractor):
        with pytest.raises(MissingColumnError, match="Date column not found"):
            csv_extractor.extract(b"Description,Amount\nRent,100\n", "nodate.csv")

    def test_header_only(self, csv_extractor):
        with pytest.raises(NoTransactionsError):
            csv_extractor.extract(b"Date,Description,Amount\n", "empty.csv")

    def test_empty_file(self, csv_extractor):
        with pytest.raises(NoTransactionsError):
            csv_extractor.extract(b"   ", "blank.csv")

    def test_no_valid_rows(self, csv_extractor):
        data = b"Date,Description,Amount\n2024-01-01,Nothing,0\n2024-01-02,Nothing,abc\n"

        with pytest.raises(NoTransactionsError, match="Processed 2 rows, skipped 2 rows"):
            csv_extractor.extract(data, "zero.csv")


class TestExcelExtractor:

    def test_serial_dates_and_amounts(self, excel_extractor):
        data = build_workbook([
            ["Date", "Description", "Credit", "Debit", "Balance"],
            [45000, "Salary March", 50000, None, 50000],
            [45001, "Uber ride", None, 350.5, 49649.5],
        ])

        outcome = excel_extractor.extract(data, "march.xlsx")

        salary, ride = outcome.transactions
        assert salary.date == "2023-03-15"
        assert salary.credit_amount == 50000
        assert ride.date == "2023-03-16"
        assert ride.debit_amount == 350.5
        # the default payment type "bank_transfer" hits a transfer keyword first
        assert ride.category == Category.TRANSFER_IN
        assert ride.source_type == SourceType.EXCEL
        assert ride.notes == "Excel Import: march.xlsx (row 3)"
        assert outcome.strategy == "excel_columns"

    def test_transaction_sheet_is_preferred(self, excel_extractor):
        data = build_workbook(None, sheets={
            "Summary": [["Account", "Total"], ["123", 10]],
            "Transaction History": [["Date", "Details", "Amount"], ["2024-01-05", "Refund", 80]],
        })

        outcome = excel_extractor.extract(data, "multi.xlsx")

        assert len(outcome.transactions) == 1
        assert outcome.transactions[0].category == Category.REFUND

    def test_corrupt_workbook(self, excel_extractor):
        with pytest.raises(ExtractionError, match="could not read Excel file"):
            excel_extractor.extract(b"not a workbook", "broken.xlsx")


class TestHelpers:

    def test_select_sheet(self):
        assert select_sheet(["Summary", "Account Statement"]) == "Account Statement"
        assert select_sheet(["Sheet1", "Sheet2"]) == "Sheet1"

    def test_footer_rows(self):
        assert is_footer_row(make_row(["Page 2 of 5"]))
        assert is_footer_row(make_row(["Statement generated on 01/02/2024"]))
        assert not is_footer_row(make_row(["2024-01-01", "Page Industries dividend", "100"]))
