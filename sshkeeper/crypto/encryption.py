"""AES-256-GCM encryption with PBKDF2-HMAC-SHA256 key derivation."""

import secrets
from typing import Dict, Mapping, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, Field

from ..errors import DecryptionError, ValidationError

ALGORITHM = "AES-256-GCM"
SUPPORTED_ALGORITHMS = (ALGORITHM,)

DEFAULT_ITERATIONS = 100_000
MIN_ITERATIONS = 10_000
MAX_ITERATIONS = 1_000_000

SALT_SIZE = 16
IV_SIZE = 12
KEY_SIZE = 32


class EncryptedData(BaseModel):
    """Ciphertext of one file plus the parameters needed to decrypt it."""

    algorithm: str = Field(default=ALGORITHM, description="Encryption algorithm")
    iterations: int = Field(description="PBKDF2 iteration count")
    salt: str = Field(description="Hex encoded PBKDF2 salt")
    iv: str = Field(description="Hex encoded GCM nonce")
    data: str = Field(description="Hex encoded ciphertext with GCM tag")

    def decode(self):
        """Return ``(salt, iv, ciphertext)`` as bytes."""
        try:
            return bytes.fromhex(self.salt), bytes.fromhex(self.iv), bytes.fromhex(self.data)
        except ValueError as e:
            raise ValidationError(f"Encrypted data is not valid hex: {e}") from e


def secure_wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer in place.

    Only the given buffer is cleared. Copies made elsewhere (immutable
    ``bytes``, library internals) are not reachable from here.
    """
    for pattern in (0x00, 0xFF, 0xAA, 0x55, 0x00):
        for i in range(len(buffer)):
            buffer[i] = pattern


def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytearray:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return bytearray(kdf.derive(passphrase.encode("utf-8")))


def generate_passphrase(length: int) -> str:
    """Random URL-safe passphrase of exactly ``length`` characters."""
    return secrets.token_urlsafe(length)[:length]


class Encryptor:
    """Encrypts and decrypts single buffers.

    Every call draws a fresh salt and nonce, so no two ciphertexts share key
    derivation inputs even under the same passphrase.
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        if iterations <= 0:
            iterations = DEFAULT_ITERATIONS
        self.iterations = iterations

    def encrypt(self, data: Union[bytes, bytearray], passphrase: str) -> EncryptedData:
        salt = secrets.token_bytes(SALT_SIZE)
        iv = secrets.token_bytes(IV_SIZE)

        key = derive_key(passphrase, salt, self.iterations)
        try:
            ciphertext = AESGCM(bytes(key)).encrypt(iv, bytes(data), None)
        finally:
            secure_wipe(key)

        return EncryptedData(
            algorithm=ALGORITHM,
            iterations=self.iterations,
            salt=salt.hex(),
            iv=iv.hex(),
            data=ciphertext.hex(),
        )

    def decrypt(self, encrypted: EncryptedData, passphrase: str) -> bytes:
        if encrypted.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValidationError(f"Unsupported algorithm: {encrypted.algorithm}")

        salt, iv, ciphertext = encrypted.decode()

        key = derive_key(passphrase, salt, encrypted.iterations)
        try:
            return AESGCM(bytes(key)).decrypt(iv, ciphertext, None)
        except InvalidTag:
            raise DecryptionError("Decryption failed: wrong passphrase or corrupted data") from None
        finally:
            secure_wipe(key)

    def encrypt_files(self, files: Mapping[str, bytes], passphrase: str) -> Dict[str, EncryptedData]:
        encrypted = {}
        for filename, data in files.items():
            encrypted[filename] = self.encrypt(data, passphrase)
        return encrypted

    def decrypt_files(self, encrypted: Mapping[str, EncryptedData], passphrase: str) -> Dict[str, bytes]:
        files = {}
        for filename, enc_data in encrypted.items():
            try:
                files[filename] = self.decrypt(enc_data, passphrase)
            except DecryptionError as e:
                raise DecryptionError(f"Failed to decrypt file {filename}: {e}") from e
        return files

    def verify_passphrase(self, encrypted: EncryptedData, passphrase: str) -> bool:
        try:
            self.decrypt(encrypted, passphrase)
        except (DecryptionError, ValidationError):
            return False
        return True
