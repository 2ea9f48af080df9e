"""
Configuration management using Pydantic Settings.
All parameters are loaded from environment variables with sensible defaults.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_BASE_PATH = Path(os.environ.get(
    "STATEMENT_ENGINE_BASE_PATH",
    os.environ.get("APP_BASE_PATH", Path.home() / ".statement_engine")
))
ENV_FILE_PATH = APP_BASE_PATH / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: str = Field(default="development")
    app_debug: bool = Field(default=False)
    app_log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Upload validation
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: [
            "application/pdf",
            "text/csv",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "image/jpeg",
            "image/jpg",
            "image/png",
        ]
    )

    # OCR
    ocr_provider: str = Field(default="tesseract")  # "tesseract" or "google_vision"
    tesseract_lang: str = Field(default="eng")
    google_application_credentials: Optional[str] = Field(default=None)
    google_credentials_base64: Optional[str] = Field(default=None)
    pdf_render_dpi: int = Field(default=200)
    pdf_ocr_fallback: bool = Field(default=True)

    # Extraction behaviour
    pdf_placeholder_fallback: bool = Field(default=True)
    strict_dates: bool = Field(default=False)
    sniff_rows: int = Field(default=3)
    text_preview_chars: int = Field(default=1000)
    extraction_timeout_seconds: float = Field(default=300.0)

    # Duplicate detection
    duplicate_threshold: int = Field(default=80)
    amount_tolerance: float = Field(default=0.01)
    description_similarity_threshold: float = Field(default=0.8)
    persistence_batch_size: int = Field(default=50)

    # Storage
    reports_dir: Path = Field(default=APP_BASE_PATH / "reports")
    log_dir: Path = Field(default=APP_BASE_PATH / "logs")

    @property
    def max_upload_mb(self) -> float:
        return self.max_upload_bytes / 1024 / 1024

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
