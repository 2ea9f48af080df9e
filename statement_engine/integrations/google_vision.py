"""
Google Cloud Vision OCR engine for statement images and scanned PDFs.
"""

import base64
import json
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog
from google.cloud import vision
from google.oauth2 import service_account

from ..config import APP_BASE_PATH, Settings, get_settings
from ..errors import OCRError

logger = structlog.get_logger()


CREDENTIALS_FILENAME = "google_vision_credentials.json"


@dataclass
class OCRWord:
    """A single word extracted by OCR with its position."""
    text: str
    confidence: float
    bounding_box: Dict[str, float]  # x, y, width, height


@dataclass
class OCRRow:
    """Words sharing a baseline, left to right."""
    words: List[OCRWord]
    y_position: float

    def to_text(self, min_gap: float) -> str:
        """
        Join words into a line; gaps wider than min_gap become a double space
        so column-aligned tables survive as "col  col  col".
        """
        if not self.words:
            return ""
        parts = [self.words[0].text]
        for prev, curr in zip(self.words, self.words[1:]):
            gap = curr.bounding_box["x"] - (prev.bounding_box["x"] + prev.bounding_box["width"])
            parts.append("  " if gap > min_gap else " ")
            parts.append(curr.text)
        return "".join(parts)


class GoogleVisionOCREngine:
    """
    OCR engine using Google Cloud Vision document text detection.

    Credentials are resolved from settings (file path, then base64), then a
    credentials file in the application folder, then
    GOOGLE_APPLICATION_CREDENTIALS, then Application Default Credentials.
    """

    name = "google_vision"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.client = self._initialize_client()

    def _initialize_client(self) -> vision.ImageAnnotatorClient:
        # Option 1: Service account file from settings
        if self.settings.google_application_credentials:
            logger.info("Using credentials from settings", path=self.settings.google_application_credentials)
            credentials = service_account.Credentials.from_service_account_file(
                self.settings.google_application_credentials
            )
            return vision.ImageAnnotatorClient(credentials=credentials)

        # Option 2: Base64 encoded credentials
        if self.settings.google_credentials_base64:
            logger.info("Using base64 credentials")
            credentials_json = base64.b64decode(
                self.settings.google_credentials_base64
            ).decode("utf-8")
            credentials = service_account.Credentials.from_service_account_info(
                json.loads(credentials_json)
            )
            return vision.ImageAnnotatorClient(credentials=credentials)

        # Option 3: Credentials file in the application folder
        creds_path = APP_BASE_PATH / CREDENTIALS_FILENAME
        if creds_path.exists():
            logger.info("Using credentials from app folder", path=str(creds_path))
            credentials = service_account.Credentials.from_service_account_file(str(creds_path))
            return vision.ImageAnnotatorClient(credentials=credentials)

        # Option 4: Environment variable GOOGLE_APPLICATION_CREDENTIALS
        env_creds = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        if env_creds and os.path.exists(env_creds):
            logger.info("Using credentials from GOOGLE_APPLICATION_CREDENTIALS", path=env_creds)
            credentials = service_account.Credentials.from_service_account_file(env_creds)
            return vision.ImageAnnotatorClient(credentials=credentials)

        # Option 5: Default credentials (from ADC)
        logger.warning("Using default Application Default Credentials - may not work correctly")
        return vision.ImageAnnotatorClient()

    def recognize(self, image_bytes: bytes) -> str:
        """Run document text detection and return the text as table-friendly lines."""
        try:
            response = self.client.document_text_detection(image=vision.Image(content=image_bytes))
        except Exception as e:
            # gRPC and transport errors
            raise OCRError(f"Vision API request failed: {e}") from e

        if response.error.message:
            raise OCRError(f"Vision API parsing error: {response.error.message}")

        words = self._parse_response(response)
        if not words:
            return response.full_text_annotation.text if response.full_text_annotation else ""

        page_height = max(w.bounding_box["y"] + w.bounding_box["height"] for w in words)
        page_width = max(w.bounding_box["x"] + w.bounding_box["width"] for w in words)
        rows = self._group_into_rows(words, page_height)
        return "\n".join(row.to_text(min_gap=page_width * 0.03) for row in rows)

    def _parse_response(self, response: vision.AnnotateImageResponse) -> List[OCRWord]:
        """Parse Vision API response into OCRWord objects."""
        words = []

        if not response.full_text_annotation:
            return words

        for page in response.full_text_annotation.pages:
            for block in page.blocks:
                for paragraph in block.paragraphs:
                    for word in paragraph.words:
                        vertices = word.bounding_box.vertices
                        x_coords = [v.x for v in vertices]
                        y_coords = [v.y for v in vertices]

                        words.append(OCRWord(
                            text="".join(symbol.text for symbol in word.symbols),
                            confidence=word.confidence,
                            bounding_box={
                                "x": min(x_coords),
                                "y": min(y_coords),
                                "width": max(x_coords) - min(x_coords),
                                "height": max(y_coords) - min(y_coords),
                            },
                        ))

        return words

    def _group_into_rows(
        self,
        words: List[OCRWord],
        page_height: float,
        row_tolerance: float = 0.01,
    ) -> List[OCRRow]:
        """
        Group words into rows based on y-coordinate proximity.

        Args:
            words: List of OCR words
            page_height: Height of the text area in pixels
            row_tolerance: Tolerance for considering words on same row (% of page height)
        """
        sorted_words = sorted(words, key=lambda w: w.bounding_box["y"])
        tolerance_px = page_height * row_tolerance

        rows = []
        current_row_words: List[OCRWord] = []
        current_y = None

        for word in sorted_words:
            word_y = word.bounding_box["y"]
            if current_y is not None and abs(word_y - current_y) <= tolerance_px:
                current_row_words.append(word)
                continue

            if current_row_words:
                rows.append(self._create_row(current_row_words))
            current_y = word_y
            current_row_words = [word]

        if current_row_words:
            rows.append(self._create_row(current_row_words))

        return rows

    @staticmethod
    def _create_row(words: List[OCRWord]) -> OCRRow:
        sorted_words = sorted(words, key=lambda w: w.bounding_box["x"])
        avg_y = sum(w.bounding_box["y"] for w in sorted_words) / len(sorted_words)
        return OCRRow(words=sorted_words, y_position=avg_y)
