"""Validated encryption service used by backup and restore."""

from collections import Counter
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationError
from ..util.logging import get_logger
from .encryption import (
    DEFAULT_ITERATIONS,
    IV_SIZE,
    MAX_ITERATIONS,
    MIN_ITERATIONS,
    SUPPORTED_ALGORITHMS,
    EncryptedData,
    Encryptor,
    generate_passphrase,
    secure_wipe,
)

logger = get_logger(__name__)

MIN_PASSPHRASE_LENGTH = 8
MIN_GENERATED_LENGTH = 16
MAX_GENERATED_LENGTH = 512


class EncryptionService:
    """Encryption with input validation in front of every operation.

    Validation failures raise :class:`ValidationError` before any key
    derivation happens. Failed authentication raises ``DecryptionError``.
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        if iterations < MIN_ITERATIONS:
            logger.warning(
                f"Iteration count {iterations} too low, using minimum {MIN_ITERATIONS}"
            )
            iterations = MIN_ITERATIONS
        elif iterations > MAX_ITERATIONS:
            logger.warning(
                f"Iteration count {iterations} too high, using maximum {MAX_ITERATIONS}"
            )
            iterations = MAX_ITERATIONS

        self._encryptor = Encryptor(iterations)

    @property
    def iterations(self) -> int:
        return self._encryptor.iterations

    def encrypt(self, data: bytes, passphrase: str, allow_empty: bool = False) -> EncryptedData:
        """Encrypt ``data``; empty input is rejected unless ``allow_empty`` is set."""
        if not data and not allow_empty:
            raise ValidationError("Cannot encrypt empty data")
        self.validate_passphrase(passphrase)

        encrypted = self._encryptor.encrypt(data, passphrase)

        logger.debug(
            f"Encrypted {len(data)} bytes with {encrypted.algorithm} "
            f"({encrypted.iterations} iterations)"
        )
        return encrypted

    def decrypt(self, encrypted: Optional[EncryptedData], passphrase: str) -> bytes:
        if encrypted is None:
            raise ValidationError("Encrypted data is missing")
        self.validate_encrypted_data(encrypted)
        self.validate_passphrase(passphrase)

        decrypted = self._encryptor.decrypt(encrypted, passphrase)

        logger.debug(f"Decrypted {len(decrypted)} bytes with {encrypted.algorithm}")
        return decrypted

    def encrypt_files(self, files: Mapping[str, bytes], passphrase: str) -> Dict[str, EncryptedData]:
        """Encrypt each buffer independently under one passphrase."""
        if not files:
            return {}
        self.validate_passphrase(passphrase)

        for filename, data in files.items():
            if not data:
                raise ValidationError(f"Cannot encrypt empty file: {filename}")

        encrypted = self._encryptor.encrypt_files(files, passphrase)
        logger.info(f"Batch encryption completed: {len(encrypted)} files")
        return encrypted

    def decrypt_files(self, encrypted: Mapping[str, EncryptedData], passphrase: str) -> Dict[str, bytes]:
        if not encrypted:
            return {}
        self.validate_passphrase(passphrase)

        for filename, enc_data in encrypted.items():
            try:
                self.validate_encrypted_data(enc_data)
            except ValidationError as e:
                raise ValidationError(f"Invalid encrypted data for file {filename}: {e}") from e

        decrypted = self._encryptor.decrypt_files(encrypted, passphrase)
        logger.info(f"Batch decryption completed: {len(decrypted)} files")
        return decrypted

    def verify_passphrase(self, encrypted: Optional[EncryptedData], passphrase: str) -> bool:
        """Check whether ``passphrase`` opens ``encrypted``; the plaintext is discarded."""
        if encrypted is None or not passphrase:
            return False

        try:
            self.validate_encrypted_data(encrypted)
        except ValidationError as e:
            logger.debug(f"Encrypted data rejected during passphrase verification: {e}")
            return False

        result = self._encryptor.verify_passphrase(encrypted, passphrase)
        logger.debug(f"Passphrase verification result: {result}")
        return result

    def generate_passphrase(self, length: int = 32) -> str:
        if length < MIN_GENERATED_LENGTH:
            logger.warning(
                f"Passphrase length {length} too short, using minimum {MIN_GENERATED_LENGTH}"
            )
            length = MIN_GENERATED_LENGTH
        elif length > MAX_GENERATED_LENGTH:
            logger.warning(
                f"Passphrase length {length} too long, using maximum {MAX_GENERATED_LENGTH}"
            )
            length = MAX_GENERATED_LENGTH

        passphrase = generate_passphrase(length)
        logger.info(f"Generated secure passphrase of {len(passphrase)} characters")
        return passphrase

    @staticmethod
    def validate_passphrase(passphrase: str) -> None:
        if not passphrase:
            raise ValidationError("Passphrase cannot be empty")

        if len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise ValidationError(
                f"Passphrase too short (minimum {MIN_PASSPHRASE_LENGTH} characters)"
            )

        if "\x00" in passphrase:
            raise ValidationError("Passphrase contains null bytes")

    @staticmethod
    def validate_encrypted_data(encrypted: EncryptedData) -> None:
        if not encrypted.data:
            raise ValidationError("Encrypted data is empty")
        if not encrypted.salt:
            raise ValidationError("Salt is empty")
        if not encrypted.iv:
            raise ValidationError("IV is empty")
        if not encrypted.algorithm:
            raise ValidationError("Algorithm is not specified")

        if encrypted.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValidationError(f"Unsupported algorithm: {encrypted.algorithm}")

        if encrypted.iterations < MIN_ITERATIONS:
            raise ValidationError(
                f"Iteration count too low: {encrypted.iterations} (minimum {MIN_ITERATIONS})"
            )
        if encrypted.iterations > MAX_ITERATIONS:
            raise ValidationError(
                f"Iteration count too high: {encrypted.iterations} (maximum {MAX_ITERATIONS})"
            )

        _, iv, _ = encrypted.decode()
        if len(iv) != IV_SIZE:
            raise ValidationError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")

    @staticmethod
    def encryption_stats(encrypted: Mapping[str, EncryptedData]) -> Dict[str, Any]:
        """Summarize a set of encrypted files; sizes are ciphertext bytes."""
        if not encrypted:
            return {}

        sizes = [len(enc.data) // 2 for enc in encrypted.values()]
        total = sum(sizes)

        return {
            "file_count": len(encrypted),
            "total_encrypted_size": total,
            "average_encrypted_size": total / len(encrypted),
            "algorithms": dict(Counter(enc.algorithm for enc in encrypted.values())),
            "iteration_counts": dict(Counter(enc.iterations for enc in encrypted.values())),
        }

    @staticmethod
    def secure_wipe(buffer: bytearray) -> None:
        secure_wipe(buffer)
