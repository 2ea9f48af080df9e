"""Ingestion module for turning statement files into transactions."""

from ..errors import (
    EmptyFileError,
    ExtractionError,
    FileTooLargeError,
    MissingColumnError,
    NoTransactionsError,
    OCRError,
    TextExtractionError,
    UnsupportedFileError,
)
from .column_mapper import ColumnMapping, map_columns, sniff_columns, suggest_mappings, validate_mapping
from .image_extractor import ImageExtractor
from .normalizer import DateParser, parse_amount, parse_date, try_parse_date
from .pdf_extractor import PDFExtractor
from .tabular import CSVExtractor, ExcelExtractor, TabularExtractor
from .text_parser import (
    LinePatternStrategy,
    PlaceholderStrategy,
    StructuredStatementStrategy,
    apply_strategies,
    extract_statement_details,
)

__all__ = [
    "ExtractionError",
    "UnsupportedFileError",
    "EmptyFileError",
    "FileTooLargeError",
    "MissingColumnError",
    "NoTransactionsError",
    "TextExtractionError",
    "OCRError",
    "ColumnMapping",
    "map_columns",
    "sniff_columns",
    "suggest_mappings",
    "validate_mapping",
    "DateParser",
    "parse_amount",
    "parse_date",
    "try_parse_date",
    "TabularExtractor",
    "ExcelExtractor",
    "CSVExtractor",
    "PDFExtractor",
    "ImageExtractor",
    "LinePatternStrategy",
    "StructuredStatementStrategy",
    "PlaceholderStrategy",
    "apply_strategies",
    "extract_statement_details",
]
