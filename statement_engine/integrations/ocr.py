"""
OCR engines. Every engine exposes ``recognize(image_bytes) -> str``.
"""

import io
from typing import Optional, Protocol

import pytesseract
import structlog
from PIL import Image, ImageOps

from ..config import Settings, get_settings
from ..errors import OCRError

logger = structlog.get_logger()


class OCREngine(Protocol):
    """Black-box text producer for images."""

    name: str

    def recognize(self, image_bytes: bytes) -> str:
        ...


class TesseractOCREngine:
    """Local OCR through the tesseract binary."""

    name = "tesseract"

    # Uniform block of text; keep runs of spaces between table columns
    CONFIG = "--oem 3 --psm 6 -c preserve_interword_spaces=1"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def recognize(self, image_bytes: bytes) -> str:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except Exception as e:
            raise OCRError(f"Unreadable image: {e}") from e

        image = ImageOps.grayscale(ImageOps.exif_transpose(image))

        try:
            text = pytesseract.image_to_string(
                image,
                lang=self.settings.tesseract_lang,
                config=self.CONFIG,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OCRError("Tesseract OCR is not installed or not in PATH") from e
        except pytesseract.TesseractError as e:
            raise OCRError(f"Tesseract failed: {e}") from e

        logger.debug("Tesseract OCR finished", characters=len(text))
        return text


def create_ocr_engine(settings: Optional[Settings] = None) -> OCREngine:
    """Engine selected by ``settings.ocr_provider``."""
    settings = settings or get_settings()
    provider = settings.ocr_provider.lower()

    if provider == "google_vision":
        from .google_vision import GoogleVisionOCREngine
        return GoogleVisionOCREngine(settings)
    if provider == "tesseract":
        return TesseractOCREngine(settings)

    raise ValueError(f"Unknown OCR provider: {settings.ocr_provider}")
