"""
PDF statement extraction: text layer first, OCR for scanned documents.
"""

from datetime import date
from typing import Callable, List, Optional

import structlog

from ..config import Settings, get_settings
from ..errors import NoTransactionsError, OCRError, TextExtractionError
from ..integrations.ocr import OCREngine, create_ocr_engine
from ..integrations.pdf_text import PDFTextSource
from ..models import ExtractionOutcome, SourceType
from .normalizer import DateParser
from .text_parser import (
    ExtractionContext,
    LinePatternStrategy,
    PlaceholderStrategy,
    StructuredStatementStrategy,
    apply_strategies,
)

logger = structlog.get_logger()


class PDFExtractor:
    """
    Extracts transactions from a PDF statement.

    Strategies are tried in order: structured statement table, generic
    line patterns and, when enabled, a single manual-entry placeholder.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ocr_engine: Optional[OCREngine] = None,
        text_source_factory: Callable[[bytes, str], PDFTextSource] = PDFTextSource,
        today: Optional[date] = None,
    ):
        self.settings = settings or get_settings()
        self._ocr_engine = ocr_engine
        self.text_source_factory = text_source_factory
        self.today = today

    @property
    def ocr_engine(self) -> OCREngine:
        if self._ocr_engine is None:
            self._ocr_engine = create_ocr_engine(self.settings)
        return self._ocr_engine

    def strategies(self) -> List:
        strategies = [StructuredStatementStrategy(), LinePatternStrategy()]
        if self.settings.pdf_placeholder_fallback:
            strategies.append(PlaceholderStrategy(today=self.today))
        return strategies

    def extract(self, data: bytes, filename: str) -> ExtractionOutcome:
        text = self.read_text(data, filename)
        if not text.strip() and not self.settings.pdf_placeholder_fallback:
            raise TextExtractionError(f"{filename}: no text could be extracted from PDF")

        context = ExtractionContext(
            filename=filename,
            source_type=SourceType.PDF,
            date_parser=DateParser(today=self.today, strict=self.settings.strict_dates),
        )
        outcome = apply_strategies(text, self.strategies(), context)
        if outcome is None:
            raise NoTransactionsError(f"{filename}: no transactions could be extracted from PDF")
        return outcome

    def read_text(self, data: bytes, filename: str) -> str:
        with self.text_source_factory(data, filename) as source:
            text = source.get_text()
            logger.info("PDF text layer read", filename=filename, pages=source.page_count, characters=len(text))

            if text.strip() or not self.settings.pdf_ocr_fallback:
                return text

            logger.info("PDF has no text layer, running OCR", filename=filename)
            try:
                pages = [
                    self.ocr_engine.recognize(image)
                    for image in source.render_pages(dpi=self.settings.pdf_render_dpi)
                ]
            except OCRError as e:
                logger.warning("PDF OCR failed", filename=filename, error=str(e))
                return ""
            return "\n".join(pages)
