"""
Audit trail for statement extraction runs.
"""

import json
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config import Settings, get_settings
from ..models import AuditAction, AuditEntry

logger = structlog.get_logger()


class AuditLogger:
    """
    Audit trail of one upload job (a single file or a batch).
    Provides both in-memory and file-based logging.
    """

    def __init__(self, job_id: str, settings: Optional[Settings] = None):
        self.job_id = job_id
        self.entries: List[AuditEntry] = []
        self.settings = settings or get_settings()

    def log(self, entry: AuditEntry) -> None:
        """Add an audit entry."""
        self.entries.append(entry)

        # Also log to structlog
        logger.info(
            entry.message,
            job_id=self.job_id,
            action=entry.action.value,
            filename=entry.filename,
            success=entry.success,
        )

    def record(
        self,
        action: AuditAction,
        message: str,
        filename: Optional[str] = None,
        transaction_ids: Optional[List[str]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
        **details: Any,
    ) -> AuditEntry:
        """Build and log an entry in one call."""
        entry = AuditEntry(
            action=action,
            filename=filename,
            transaction_ids=transaction_ids or [],
            message=message,
            details=details,
            success=success,
            error_message=error_message,
        )
        self.log(entry)
        return entry

    def get_entries(
        self,
        action_filter: Optional[str] = None,
        success_only: bool = False,
    ) -> List[AuditEntry]:
        """Get filtered audit entries."""
        entries = self.entries

        if action_filter:
            entries = [e for e in entries if e.action.value == action_filter]

        if success_only:
            entries = [e for e in entries if e.success]

        return entries

    def export_to_file(self, output_path: Optional[Path] = None) -> Path:
        """Export audit log to JSON file."""
        if output_path is None:
            output_path = self.settings.reports_dir / f"audit_{self.job_id}.json"

        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "job_id": self.job_id,
            "exported_at": datetime.utcnow().isoformat(),
            "total_entries": len(self.entries),
            "entries": [
                {
                    "id": e.id,
                    "timestamp": e.timestamp.isoformat(),
                    "action": e.action.value,
                    "filename": e.filename,
                    "transaction_ids": e.transaction_ids,
                    "message": e.message,
                    "details": e.details,
                    "success": e.success,
                    "error_message": e.error_message,
                }
                for e in self.entries
            ],
        }

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        logger.info("Audit log exported", path=str(output_path))
        return output_path

    def summary(self) -> Dict[str, Any]:
        """Get summary statistics of audit log."""
        action_counts = Counter(e.action.value for e in self.entries)
        success_count = sum(1 for e in self.entries if e.success)
        error_count = sum(1 for e in self.entries if not e.success)

        return {
            "total_entries": len(self.entries),
            "success_count": success_count,
            "error_count": error_count,
            "action_counts": dict(action_counts),
        }
