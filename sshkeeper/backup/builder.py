"""Building, encrypting and verifying backup records."""

import getpass
import socket
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..analyzer.service import AnalyzerService
from ..crypto.service import EncryptionService
from ..errors import IntegrityError
from ..util.logging import get_logger
from ..util.paths import PathNormalizer, format_mode
from .models import BackupData, FileData
from .reader import ReadService
from .restore import CRITICAL, check_file_permissions

logger = get_logger(__name__)


def current_username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class BackupBuilder:
    """Turns an SSH directory into a BackupData record and back."""

    def __init__(
        self,
        analyzer: Optional[AnalyzerService] = None,
        reader: Optional[ReadService] = None,
        encryption: Optional[EncryptionService] = None,
        normalizer: Optional[PathNormalizer] = None,
        verify_integrity: bool = True,
    ):
        self.analyzer = analyzer or AnalyzerService()
        self.reader = reader or ReadService()
        self.encryption = encryption or EncryptionService()
        self.normalizer = normalizer or PathNormalizer()
        self.verify_integrity = verify_integrity

    def read_directory(self, ssh_dir: Union[str, Path]) -> BackupData:
        """Analyze and read an SSH directory into an unencrypted backup."""
        directory = self.reader.validate_directory(ssh_dir)
        logger.info(f"Reading SSH directory: {directory}")

        analysis = self.analyzer.analyze_directory(directory)

        files: Dict[str, FileData] = {}
        for key_info in analysis.keys:
            try:
                file_data = self.reader.read_file(directory / key_info.filename)
            except OSError as e:
                logger.warning(f"Failed to read file {key_info.filename}, leaving it out: {e}")
                continue
            file_data.key_info = key_info
            files[key_info.filename] = file_data

        absolute_dir = str(directory.absolute())
        normalized_dir = self.normalizer.normalize_path(absolute_dir)
        username = current_username()
        total_size = sum(f.size for f in files.values())

        backup = BackupData(
            hostname=socket.gethostname(),
            username=username,
            ssh_dir=absolute_dir,
            ssh_dir_normalized=normalized_dir,
            original_user=username,
            files=files,
            analysis=analysis,
            metadata={
                "total_files": len(files),
                "total_size": total_size,
                "key_pair_count": len(analysis.key_pairs),
                "service_count": len(analysis.categories.get("service", [])),
                "normalized_path": normalized_dir,
                "cross_user_compatible": normalized_dir.startswith("~"),
                "checksum_algorithm": self.reader.hash_algorithm,
                "encrypted": False,
            },
        )

        logger.info(f"SSH directory read completed: {len(files)} files, {total_size} bytes")
        return backup

    def encrypt_backup(self, backup: BackupData, passphrase: str) -> None:
        """Encrypt every file in place and drop its plaintext."""
        self.encryption.validate_passphrase(passphrase)
        logger.info("Encrypting backup data")

        for filename in sorted(backup.files):
            file_data = backup.files[filename]
            if file_data.content is None:
                continue

            # empty files are encrypted too so every entry carries a GCM tag
            file_data.encrypted_data = self.encryption.encrypt(
                file_data.content, passphrase, allow_empty=True
            )
            file_data.content = None
            logger.debug(f"File encrypted: {filename}")

        backup.metadata["encrypted"] = True
        logger.info(f"Backup encryption completed: {len(backup.files)} files")

    def decrypt_backup(self, backup: BackupData, passphrase: str) -> None:
        """Decrypt every file, checking checksums when enabled.

        Nothing in ``backup`` changes unless every file decrypts and passes
        its integrity check. An encrypted backup must not contain any
        unencrypted entry.
        """
        self.encryption.validate_passphrase(passphrase)
        logger.info("Decrypting backup data")

        if backup.is_encrypted:
            unprotected = sorted(name for name, f in backup.files.items() if f.encrypted_data is None)
            if unprotected:
                raise IntegrityError(
                    f"Encrypted backup contains unencrypted files: {', '.join(unprotected)}"
                )

        contents: Dict[str, bytes] = {}
        for filename in sorted(backup.files):
            file_data = backup.files[filename]
            if file_data.encrypted_data is None:
                continue

            content = self.encryption.decrypt(file_data.encrypted_data, passphrase)

            if self.verify_integrity:
                self.reader.validate_file_integrity(
                    file_data.model_copy(update={"content": content, "encrypted_data": None})
                )
            contents[filename] = content
            logger.debug(f"File decrypted: {filename}")

        for filename, content in contents.items():
            file_data = backup.files[filename]
            file_data.content = content
            file_data.encrypted_data = None

        backup.metadata["encrypted"] = False
        logger.info(f"Backup decryption completed: {len(backup.files)} files")

    def verify_backup(self, backup: BackupData) -> None:
        """Recompute every checksum; raises IntegrityError on the first mismatch."""
        if backup.is_encrypted:
            raise IntegrityError("Backup must be decrypted before it can be verified")

        for filename in sorted(backup.files):
            self.reader.validate_file_integrity(backup.files[filename])

        logger.info(f"Backup integrity verified: {len(backup.files)} files")

    def permission_summary(self, backup: BackupData) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        critical = []
        warnings = []

        for filename in sorted(backup.files):
            file_data = backup.files[filename]
            mode = format_mode(file_data.permissions)
            counts[mode] = counts.get(mode, 0) + 1

            severity = check_file_permissions(filename, file_data.permissions, file_data.key_info)
            if severity == CRITICAL:
                critical.append(filename)
            elif severity is not None:
                warnings.append(filename)

        return {"permission_counts": counts, "critical": critical, "warnings": warnings}
