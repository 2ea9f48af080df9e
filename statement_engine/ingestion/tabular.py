"""
Excel and CSV statement extraction.

Files are decoded with pandas into a grid of Cells (row 0 is the header),
columns are inferred by the column mapper and every data row is turned
into a Transaction.
"""

import io
import re
from datetime import date
from typing import List, Optional, Sequence

import pandas as pd
import structlog

from ..config import Settings, get_settings
from ..errors import ExtractionError, NoTransactionsError
from ..models import (
    ColumnRole,
    ExtractionOutcome,
    RawRow,
    SourceType,
    Transaction,
    cell_at,
    make_row,
    row_is_blank,
)
from ..processing.categorizer import classify, normalize_payment_type
from .column_mapper import (
    ColumnMapping,
    map_columns,
    needs_sniffing,
    sniff_columns,
    validate_mapping,
)
from .normalizer import DateParser, parse_amount

logger = structlog.get_logger()


# latin1 accepts any byte sequence, so it goes last
CSV_ENCODINGS = ("utf-8", "utf-8-sig", "cp1252", "latin1")
TRANSACTION_SHEET_KEYWORDS = ("transaction", "statement", "activity", "history")

FOOTER_PHRASES = (
    "computer generated statement",
    "does not require a signature",
    "end of statement",
)
PAGE_FOOTER_PATTERN = re.compile(r"\bpage\s*\d+\s*(?:of|/)\s*\d+\b", re.I)


class TabularExtractor:
    """Shared row-mapping logic for spreadsheet-like sources."""

    source_type: SourceType = SourceType.EXCEL
    import_label: str = "Tabular Import"

    def __init__(self, settings: Optional[Settings] = None, today: Optional[date] = None):
        self.settings = settings or get_settings()
        self.today = today

    def extract(self, data: bytes, filename: str) -> ExtractionOutcome:
        grid = self.read_grid(data, filename)
        return self.extract_rows(grid, filename)

    def read_grid(self, data: bytes, filename: str) -> List[RawRow]:
        raise NotImplementedError

    def extract_rows(self, grid: Sequence[RawRow], filename: str) -> ExtractionOutcome:
        """
        Turn a decoded grid into transactions.

        Raises:
            NoTransactionsError: no data rows, or no row produced a transaction
            MissingColumnError: date or amount columns could not be found
        """
        if not grid:
            raise NoTransactionsError(f"{filename}: file contains no rows")

        header_row, rows = grid[0], list(grid[1:])
        data_rows = [row for row in rows if not row_is_blank(row)]
        if not data_rows:
            raise NoTransactionsError(f"{filename}: no data rows found after the header row")

        mapping = map_columns([cell.text for cell in header_row])
        if needs_sniffing(mapping):
            mapping = sniff_columns(mapping, data_rows, sample_size=self.settings.sniff_rows)
        validate_mapping(mapping, filename)

        date_parser = DateParser(today=self.today, strict=self.settings.strict_dates)
        outcome = ExtractionOutcome(
            total_rows=len(rows),
            strategy=f"{self.source_type.value}_columns",
            column_mapping=mapping.as_dict(),
            columns_sniffed=mapping.sniffed,
        )

        # Spreadsheet row numbers: the header is row 1
        for row_number, row in enumerate(rows, start=2):
            if row_is_blank(row) or is_footer_row(row):
                outcome.skipped_rows += 1
                continue

            transaction = self._row_to_transaction(row, row_number, mapping, date_parser, filename)
            if transaction is None:
                outcome.skipped_rows += 1
                continue

            outcome.processed_rows += 1
            outcome.transactions.append(transaction)

        outcome.date_fallbacks = date_parser.fallback_count
        outcome.warnings.extend(date_parser.warnings)

        logger.info(
            "Tabular extraction finished",
            filename=filename,
            source_type=self.source_type.value,
            processed=outcome.processed_rows,
            skipped=outcome.skipped_rows,
            sniffed=mapping.sniffed,
        )

        if not outcome.transactions:
            raise NoTransactionsError(
                f"{filename}: No valid transactions found. Processed {len(rows)} rows, "
                f"skipped {outcome.skipped_rows} rows."
            )
        return outcome

    def _row_to_transaction(
        self,
        row: RawRow,
        row_number: int,
        mapping: ColumnMapping,
        date_parser: DateParser,
        filename: str,
    ) -> Optional[Transaction]:
        def cell(role: ColumnRole):
            return cell_at(row, mapping.index_of(role))

        credit, debit = self._resolve_amounts(row, mapping)
        if credit == 0 and debit == 0:
            logger.debug("Row has no usable amount", filename=filename, row=row_number)
            return None

        description = self._resolve_description(row, row_number, mapping)

        payment_cell = cell(ColumnRole.PAYMENT_TYPE)
        if payment_cell.is_empty:
            payment_cell = cell(ColumnRole.PAYMENT_METHOD)
        payment_type = normalize_payment_type(payment_cell.text)

        balance_cell = cell(ColumnRole.BALANCE)
        balance = None if balance_cell.is_empty else parse_amount(balance_cell)

        account_cell = cell(ColumnRole.ACCOUNT_NO)
        reference_cell = cell(ColumnRole.REFERENCE_ID)

        return Transaction(
            date=date_parser(cell(ColumnRole.DATE)),
            description=description,
            transaction_name=description,
            payment_type=payment_type,
            category=classify(description, payment_type),
            credit_amount=credit,
            debit_amount=debit,
            balance=balance,
            account_no=account_cell.text or None,
            reference_id=reference_cell.text or None,
            source_file=filename,
            source_type=self.source_type,
            notes=f"{self.import_label}: {filename} (row {row_number})",
        )

    @staticmethod
    def _resolve_amounts(row: RawRow, mapping: ColumnMapping):
        credit = debit = 0.0
        if mapping.has(ColumnRole.CREDIT) or mapping.has(ColumnRole.DEBIT):
            credit = abs(parse_amount(cell_at(row, mapping.index_of(ColumnRole.CREDIT))))
            debit = abs(parse_amount(cell_at(row, mapping.index_of(ColumnRole.DEBIT))))

        if credit == 0 and debit == 0 and mapping.has(ColumnRole.AMOUNT):
            signed = parse_amount(cell_at(row, mapping.index_of(ColumnRole.AMOUNT)))
            if signed > 0:
                credit = signed
            elif signed < 0:
                debit = abs(signed)

        return credit, debit

    @staticmethod
    def _resolve_description(row: RawRow, row_number: int, mapping: ColumnMapping) -> str:
        description = cell_at(row, mapping.index_of(ColumnRole.DESCRIPTION)).text
        if description:
            return description

        if mapping.has(ColumnRole.CUSTOMER) or mapping.has(ColumnRole.PAYMENT_METHOD):
            customer = cell_at(row, mapping.index_of(ColumnRole.CUSTOMER)).text or "Unknown"
            method = cell_at(row, mapping.index_of(ColumnRole.PAYMENT_METHOD)).text or "Unknown"
            return f"{customer} - {method} payment"

        return f"Row {row_number}"


class ExcelExtractor(TabularExtractor):
    """Extractor for .xlsx and .xls workbooks."""

    source_type = SourceType.EXCEL
    import_label = "Excel Import"

    def read_grid(self, data: bytes, filename: str) -> List[RawRow]:
        try:
            workbook = pd.ExcelFile(io.BytesIO(data))
            sheet = select_sheet(workbook.sheet_names)
            frame = workbook.parse(sheet_name=sheet, header=None, dtype=object)
        except Exception as e:
            logger.error("Excel decode failed", filename=filename, error=str(e))
            raise ExtractionError(f"{filename}: could not read Excel file: {e}") from e

        logger.info("Excel sheet loaded", filename=filename, sheet=sheet, rows=len(frame))
        return frame_to_grid(frame)


class CSVExtractor(TabularExtractor):
    """Extractor for comma separated exports."""

    source_type = SourceType.CSV
    import_label = "CSV Import"

    def read_grid(self, data: bytes, filename: str) -> List[RawRow]:
        if not data.strip():
            raise NoTransactionsError(f"{filename}: file contains no rows")

        for encoding in CSV_ENCODINGS:
            try:
                frame = pd.read_csv(
                    io.BytesIO(data),
                    encoding=encoding,
                    header=None,
                    dtype=str,
                    on_bad_lines="skip",
                    skipinitialspace=True,
                )
            except UnicodeDecodeError:
                continue
            except pd.errors.EmptyDataError as e:
                raise NoTransactionsError(f"{filename}: file contains no rows") from e
            except pd.errors.ParserError as e:
                raise ExtractionError(f"{filename}: could not parse CSV: {e}") from e

            logger.info("CSV loaded", filename=filename, encoding=encoding, rows=len(frame))
            return frame_to_grid(frame)

        raise ExtractionError(
            f"{filename}: could not decode CSV with any of the tried encodings: "
            f"{', '.join(CSV_ENCODINGS)}"
        )


def select_sheet(sheet_names: Sequence[str]):
    """First sheet named like a transaction listing, else the first sheet."""
    for name in sheet_names:
        if any(keyword in str(name).lower() for keyword in TRANSACTION_SHEET_KEYWORDS):
            return name
    return sheet_names[0] if sheet_names else 0


def frame_to_grid(frame: pd.DataFrame) -> List[RawRow]:
    return [make_row(values) for values in frame.itertuples(index=False, name=None)]


def is_footer_row(row: RawRow) -> bool:
    text = " ".join(cell.text for cell in row if not cell.is_empty).lower()
    if any(phrase in text for phrase in FOOTER_PHRASES):
        return True
    if "statement" in text and "generated" in text:
        return True
    return PAGE_FOOTER_PATTERN.search(text) is not None
