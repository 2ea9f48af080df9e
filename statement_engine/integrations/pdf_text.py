"""
PDF text-layer access and page rendering backed by PyMuPDF.
"""

from typing import List

import fitz  # PyMuPDF
import structlog

from ..errors import TextExtractionError

logger = structlog.get_logger()


class PDFTextSource:
    """
    Per-page view of a PDF held in memory.

    Pages are numbered from 1. Use as a context manager so the document is
    closed once extraction is done.
    """

    def __init__(self, data: bytes, filename: str = ""):
        self.filename = filename
        try:
            self.doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise TextExtractionError(f"{filename}: could not open PDF: {e}") from e

    def __enter__(self) -> "PDFTextSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return len(self.doc)

    def get_page_text(self, page_number: int) -> str:
        """Text layer of one page, lines kept in reading order."""
        page = self.doc[page_number - 1]
        return page.get_text("text")

    def get_text(self) -> str:
        return "\n".join(self.get_page_text(n) for n in range(1, self.page_count + 1))

    def render_page_png(self, page_number: int, dpi: int = 200) -> bytes:
        """Rasterise one page for OCR."""
        page = self.doc[page_number - 1]
        zoom = dpi / 72
        pixmap = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        return pixmap.tobytes("png")

    def render_pages(self, dpi: int = 200) -> List[bytes]:
        images = []
        for page_number in range(1, self.page_count + 1):
            logger.debug("Rendering page", page=page_number, total=self.page_count)
            images.append(self.render_page_png(page_number, dpi=dpi))
        return images

    def close(self) -> None:
        self.doc.close()
