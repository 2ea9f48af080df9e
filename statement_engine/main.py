"""
FastAPI application for bank statement extraction.
Accepts uploaded statements and returns normalized transactions.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
from uuid import uuid4

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog

from .config import Settings, get_settings
from .ingestion import map_columns, suggest_mappings
from .pipeline import FileProcessor
from .utils import AuditLogger

logger = structlog.get_logger()
settings = get_settings()


def setup_logging(settings: Settings = settings) -> None:
    """Configure logging to file and console."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_dir / "app.log", encoding="utf-8"))
    except OSError as e:
        print(f"File logging disabled: {e}", file=sys.stderr)

    # Configure standard logging
    logging.basicConfig(
        level=getattr(logging, settings.app_log_level.upper(), logging.INFO),
        format="%(message)s",
        handlers=handlers,
    )

    # Configure structlog to use standard logging
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer() if settings.app_debug else structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting statement extraction API", env=settings.app_env, ocr_provider=settings.ocr_provider)
    settings.reports_dir.mkdir(parents=True, exist_ok=True)
    yield
    logger.info("Shutting down statement extraction API")


app = FastAPI(
    title="Statement Engine",
    description="Bank statement transaction extraction",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class ColumnSuggestRequest(BaseModel):
    headers: List[str]


class ColumnSuggestResponse(BaseModel):
    mapping: dict
    missing: List[str]
    suggestions: dict


def get_processor() -> FileProcessor:
    """One processor, and so one audit trail, per request."""
    return FileProcessor(settings, audit_logger=AuditLogger(job_id=str(uuid4()), settings=settings))


async def _run_with_timeout(func, *args, timeout: float):
    return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)


# API Endpoints
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ocr_provider": settings.ocr_provider,
    }


@app.post("/api/extract")
async def extract_statement(
    file: UploadFile = File(...),
    processor: FileProcessor = Depends(get_processor),
):
    """Extract transactions from one uploaded statement."""
    filename = file.filename or "upload"
    data = await file.read()

    try:
        result = await _run_with_timeout(
            processor.process_file, data, filename, file.content_type,
            timeout=settings.extraction_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Extraction timed out", filename=filename, timeout=settings.extraction_timeout_seconds)
        raise HTTPException(504, f"{filename}: extraction timed out after {settings.extraction_timeout_seconds:.0f}s")

    return JSONResponse(result.to_dict(), status_code=200 if result.success else 422)


@app.post("/api/extract/batch")
async def extract_batch(
    files: List[UploadFile] = File(...),
    processor: FileProcessor = Depends(get_processor),
):
    """Extract transactions from several statements, one after another."""
    uploads = []
    for upload in files:
        uploads.append((await upload.read(), upload.filename or "upload", upload.content_type))

    def log_progress(percent: float, filename: str) -> None:
        logger.info("Batch progress", progress=round(percent, 1), filename=filename)

    timeout = settings.extraction_timeout_seconds * max(1, len(uploads))
    try:
        batch = await _run_with_timeout(processor.process_batch, uploads, log_progress, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Batch extraction timed out", files=len(uploads), timeout=timeout)
        raise HTTPException(504, f"Batch extraction timed out after {timeout:.0f}s")

    return {
        "results": [r.to_dict() for r in batch.results],
        "succeeded": batch.succeeded,
        "failed": batch.failed,
        "total_transactions": len(batch.transactions),
    }


@app.post("/api/columns/suggest", response_model=ColumnSuggestResponse)
async def suggest_columns(request: ColumnSuggestRequest):
    """Show how a header row would be mapped, with candidates for unmapped headers."""
    mapping = map_columns(request.headers)
    return ColumnSuggestResponse(
        mapping=mapping.as_dict(),
        missing=mapping.missing_required(),
        suggestions=suggest_mappings(request.headers),
    )


def run() -> None:
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
