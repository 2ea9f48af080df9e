"""Content hashing for uploaded files."""

import hashlib


def sha256_hex(data: bytes) -> str:
    """SHA-256 of the file content as lowercase hex; identifies re-uploads."""
    return hashlib.sha256(data).hexdigest()
