"""Crypto module initialization."""

from .encryption import (
    ALGORITHM,
    DEFAULT_ITERATIONS,
    MAX_ITERATIONS,
    MIN_ITERATIONS,
    EncryptedData,
    Encryptor,
    generate_passphrase,
    secure_wipe,
)
from .service import EncryptionService

__all__ = [
    "ALGORITHM",
    "DEFAULT_ITERATIONS",
    "MAX_ITERATIONS",
    "MIN_ITERATIONS",
    "EncryptedData",
    "EncryptionService",
    "Encryptor",
    "generate_passphrase",
    "secure_wipe",
]
