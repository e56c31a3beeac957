"""Reading SSH directories into FileData records."""

import os
from pathlib import Path
from typing import Any, Dict, Union

from ..analyzer.service import list_regular_files, validate_directory
from ..analyzer.types import DetectionResult
from ..errors import IntegrityError, ValidationError
from ..util.hashing import DEFAULT_ALGORITHM, calculate_bytes_hash
from ..util.logging import get_logger
from ..util.paths import format_mode
from ..util.timeutil import format_rfc3339, timestamp_to_datetime
from .models import FileData

logger = get_logger(__name__)

# Anything larger is unusual for an SSH directory
MAX_RECOMMENDED_SIZE = 10 * 1024 * 1024


class ReadService:
    """Reads files, computes checksums and checks them again later."""

    def __init__(self, hash_algorithm: str = DEFAULT_ALGORITHM, max_file_size: int = MAX_RECOMMENDED_SIZE):
        self.hash_algorithm = hash_algorithm
        self.max_file_size = max_file_size

    def validate_directory(self, ssh_dir: Union[str, Path]) -> Path:
        if not str(ssh_dir):
            raise ValidationError("Directory path cannot be empty")

        directory = Path(ssh_dir)
        validate_directory(directory)

        logger.debug(f"Directory validated: {directory} ({format_mode(directory.stat().st_mode)})")
        return directory

    def read_ssh_directory(self, ssh_dir: Union[str, Path]) -> Dict[str, FileData]:
        """Read every regular file; unreadable files are logged and skipped."""
        directory = self.validate_directory(ssh_dir)

        files: Dict[str, FileData] = {}
        for filename in list_regular_files(directory):
            try:
                files[filename] = self.read_file(directory / filename)
            except OSError as e:
                logger.warning(f"Failed to read file {filename}, skipping: {e}")

        logger.info(f"SSH directory read completed: {len(files)} files from {directory}")
        return files

    def read_file(self, file_path: Union[str, Path]) -> FileData:
        file_path = Path(file_path)
        st = os.stat(file_path)

        if st.st_size > self.max_file_size:
            logger.warning(f"File {file_path.name} is unusually large for an SSH directory: {st.st_size} bytes")

        with open(file_path, "rb") as f:
            content = f.read()

        checksum = self.calculate_checksum(content)

        file_data = FileData(
            filename=file_path.name,
            content=content,
            permissions=st.st_mode & 0o777,
            size=len(content),
            mod_time=timestamp_to_datetime(st.st_mtime),
            checksum=checksum,
        )

        logger.debug(
            f"Read {file_data.filename}: {len(content)} bytes, "
            f"checksum {checksum[:8]}..., mode {format_mode(file_data.permissions)}"
        )
        return file_data

    def calculate_checksum(self, data: bytes) -> str:
        return calculate_bytes_hash(data, self.hash_algorithm)

    def validate_file_integrity(self, file_data: FileData) -> None:
        """Raise IntegrityError unless the content matches the stored checksum."""
        if file_data.content is None:
            raise IntegrityError(f"File content is missing: {file_data.filename}")

        actual = self.calculate_checksum(file_data.content)
        if actual != file_data.checksum:
            raise IntegrityError(
                f"Checksum mismatch for file {file_data.filename}: "
                f"expected {file_data.checksum}, got {actual}"
            )

    def verify_file_permissions(self, file_path: Union[str, Path], expected_mode: int) -> None:
        """Raise ValidationError if the file mode differs from ``expected_mode``."""
        actual = os.stat(file_path).st_mode & 0o777
        expected = expected_mode & 0o777

        if actual != expected:
            raise ValidationError(
                f"File {file_path} has permissions {format_mode(actual)}, expected {format_mode(expected)}"
            )

    def add_key_info_to_files(self, files: Dict[str, FileData], analysis: DetectionResult) -> None:
        """Attach each file's KeyInfo from the analysis, in place."""
        key_infos = {key.filename: key for key in analysis.keys}

        for filename, file_data in files.items():
            key_info = key_infos.get(filename)
            if key_info is not None:
                file_data.key_info = key_info

        logger.debug(f"Key info added: {len(key_infos)} analyzed, {len(files)} files")

    @staticmethod
    def file_stats(files: Dict[str, FileData]) -> Dict[str, Any]:
        if not files:
            return {"file_count": 0, "total_size": 0}

        total_size = sum(f.size for f in files.values())
        mod_times = [f.mod_time for f in files.values()]

        permission_counts: Dict[str, int] = {}
        for f in files.values():
            mode = format_mode(f.permissions)
            permission_counts[mode] = permission_counts.get(mode, 0) + 1

        return {
            "file_count": len(files),
            "total_size": total_size,
            "average_size": total_size / len(files),
            "oldest_file": format_rfc3339(min(mod_times)),
            "newest_file": format_rfc3339(max(mod_times)),
            "permission_counts": permission_counts,
        }
