"""Utility functions for hashing operations."""

import hashlib

DEFAULT_ALGORITHM = "sha256"


def calculate_bytes_hash(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Calculate hash of bytes data."""
    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return hasher.hexdigest()
