"""
Image statement extraction through OCR.
"""

from datetime import date
from typing import Optional

import structlog

from ..config import Settings, get_settings
from ..errors import NoTransactionsError, TextExtractionError
from ..integrations.ocr import OCREngine, create_ocr_engine
from ..models import ExtractionOutcome, SourceType
from .normalizer import DateParser
from .text_parser import ExtractionContext, LinePatternStrategy, apply_strategies

logger = structlog.get_logger()


class ImageExtractor:
    """OCR the image, then match statement lines."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ocr_engine: Optional[OCREngine] = None,
        today: Optional[date] = None,
    ):
        self.settings = settings or get_settings()
        self._ocr_engine = ocr_engine
        self.today = today

    @property
    def ocr_engine(self) -> OCREngine:
        if self._ocr_engine is None:
            self._ocr_engine = create_ocr_engine(self.settings)
        return self._ocr_engine

    def extract(self, data: bytes, filename: str) -> ExtractionOutcome:
        text = self.ocr_engine.recognize(data)
        logger.info("Image OCR finished", filename=filename, engine=self.ocr_engine.name, characters=len(text))

        if not text.strip():
            raise TextExtractionError(f"{filename}: OCR produced no text")

        context = ExtractionContext(
            filename=filename,
            source_type=SourceType.IMAGE,
            date_parser=DateParser(today=self.today, strict=self.settings.strict_dates),
        )
        outcome = apply_strategies(text, [LinePatternStrategy()], context)
        if outcome is None:
            raise NoTransactionsError(f"{filename}: no transactions could be extracted from image")
        return outcome
