"""External integrations: PDF text, OCR engines and transaction storage."""

from .ocr import OCREngine, TesseractOCREngine, create_ocr_engine
from .pdf_text import PDFTextSource
from .repository import InMemoryTransactionRepository, TransactionRepository

__all__ = [
    "OCREngine",
    "TesseractOCREngine",
    "create_ocr_engine",
    "PDFTextSource",
    "TransactionRepository",
    "InMemoryTransactionRepository",
]
