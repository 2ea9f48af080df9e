"""Utility modules."""

from .audit_logger import AuditLogger
from .file_hash import sha256_hex

__all__ = ["AuditLogger", "sha256_hex"]
