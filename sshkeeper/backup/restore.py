"""Restoring backed up files with their exact permissions."""

import fnmatch
import os
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

import click
from tqdm import tqdm

from ..analyzer.types import KeyInfo, KeyType
from ..errors import PermissionVerificationError, RestoreError, ValidationError
from ..util.logging import get_logger
from ..util.paths import ensure_directory, expand_user_path, format_mode, is_plain_filename
from .models import BackupData, FileData, FileOutcome, PermissionReport, RestoreOptions, RestoreResult

logger = get_logger(__name__)

SSH_DIR_MODE = 0o700
FALLBACK_FILE_MODE = 0o600

CRITICAL = "critical"
WARNING = "warning"

# Acceptable modes per file type, the first one is recommended
_EXPECTED_MODES: Dict[KeyType, Tuple[int, ...]] = {
    KeyType.PRIVATE: (0o600,),
    KeyType.PUBLIC: (0o644, 0o600),
}
_DEFAULT_EXPECTED_MODES = (0o600, 0o644)

PromptFn = Callable[..., bool]


def check_file_permissions(filename: str, mode: int, key_info: Optional[KeyInfo] = None) -> Optional[str]:
    """Compare a mode with SSH conventions for the file's type.

    Returns ``"critical"`` for a private key readable or writable by group or
    others, ``"warning"`` for any other unconventional mode, otherwise None.
    """
    mode &= 0o777
    key_type = key_info.type if key_info is not None else KeyType.UNKNOWN
    expected = _EXPECTED_MODES.get(key_type, _DEFAULT_EXPECTED_MODES)

    if mode in expected:
        return None

    recommended = ", ".join(format_mode(m) for m in expected)
    if key_type == KeyType.PRIVATE and mode & 0o077:
        logger.critical(
            f"Private key {filename} has group/world permissions ({format_mode(mode)}); "
            f"SSH will reject it"
        )
        return CRITICAL

    logger.warning(
        f"File {filename} has unusual permissions {format_mode(mode)} (recommended: {recommended})"
    )
    return WARNING


class RestoreService:
    """Writes backup files into a target directory.

    Each file ends in one of three states: restored, skipped or would
    restore (dry run). Write failures abort the call; files already written
    stay on disk.
    """

    def __init__(self, prompt: Optional[PromptFn] = None, show_progress: bool = False):
        self.prompt = prompt or click.confirm
        self.show_progress = show_progress

    def restore_files(
        self,
        backup: BackupData,
        target_dir: Union[str, Path],
        options: Optional[RestoreOptions] = None,
    ) -> RestoreResult:
        if backup is None:
            raise ValidationError("Backup data is missing")
        if options is None:
            options = RestoreOptions()

        target = self.validate_restore_target(target_dir)
        self.validate_file_entries(backup)

        logger.info(
            f"Starting file restoration to {target} "
            f"({len(backup.files)} files, dry_run={options.dry_run})"
        )

        if not options.dry_run:
            self.create_ssh_directory(target)

        result = RestoreResult()
        filenames = sorted(backup.files)

        with tqdm(
            total=len(filenames),
            desc="Restoring files",
            unit="file",
            disable=not self.show_progress or options.interactive,
        ) as pbar:
            for filename in filenames:
                pbar.set_postfix_str(filename)
                outcome = self._restore_entry(filename, backup.files[filename], target, options)
                result.record(filename, outcome)
                pbar.update(1)

        logger.info(
            f"File restoration completed: {len(result.restored)} restored, "
            f"{len(result.skipped)} skipped, {len(result.would_restore)} would restore"
        )
        return result

    def _restore_entry(
        self,
        filename: str,
        file_data: FileData,
        target: Path,
        options: RestoreOptions,
    ) -> FileOutcome:
        if not self.should_restore_file(filename, file_data, options):
            logger.debug(f"File {filename} filtered out")
            return FileOutcome.SKIPPED

        target_path = target / filename

        if options.dry_run:
            logger.info(
                f"[DRY RUN] Would restore {filename} to {target_path} "
                f"(mode {format_mode(self.appropriate_permissions(file_data))}, {file_data.size} bytes)"
            )
            return FileOutcome.WOULD_RESTORE

        if os.path.lexists(target_path) and not self._confirm_overwrite(filename, options):
            return FileOutcome.SKIPPED

        self.restore_single_file(file_data, target_path)
        return FileOutcome.RESTORED

    def validate_restore_target(self, target_dir: Union[str, Path]) -> Path:
        """Check that ``target_dir`` can hold restored files, without writing anything."""
        if not str(target_dir):
            raise ValidationError("Target directory cannot be empty")

        target = expand_user_path(str(target_dir))

        if target.exists():
            if not target.is_dir():
                raise ValidationError(f"Target path exists but is not a directory: {target}")
            logger.debug(f"Target directory already exists: {target}")
            return target

        parent = target.absolute().parent
        if not parent.is_dir():
            raise ValidationError(f"Parent directory does not exist: {parent}")

        if not os.access(parent, os.W_OK | os.X_OK):
            raise ValidationError(f"Cannot write to parent directory: {parent}")

        return target

    @staticmethod
    def validate_file_entries(backup: BackupData) -> None:
        """Reject entries whose names would resolve outside the target directory."""
        for name, file_data in backup.files.items():
            if not is_plain_filename(name) or name != file_data.filename:
                raise RestoreError(f"Refusing to restore unsafe file entry {name!r}")

    def create_ssh_directory(self, target: Path) -> None:
        ensure_directory(target, mode=SSH_DIR_MODE)

        mode = target.stat().st_mode & 0o777
        if mode != SSH_DIR_MODE:
            try:
                os.chmod(target, SSH_DIR_MODE)
            except OSError as e:
                logger.warning(
                    f"SSH directory {target} has permissions {format_mode(mode)} and chmod failed: {e}"
                )
            else:
                logger.info(f"Fixed SSH directory permissions to 0700: {target}")

        logger.info(f"SSH directory ready: {target}")

    def should_restore_file(self, filename: str, file_data: FileData, options: RestoreOptions) -> bool:
        if options.file_filter and not any(
            fnmatch.fnmatchcase(filename, pattern) for pattern in options.file_filter
        ):
            return False

        if options.type_filter and file_data.key_type not in options.type_filter:
            return False

        return True

    def _confirm_overwrite(self, filename: str, options: RestoreOptions) -> bool:
        if options.overwrite:
            return True

        if options.interactive:
            return bool(self.prompt(f"File {filename} already exists. Overwrite?", default=False))

        logger.info(f"File {filename} exists, skipping (use --overwrite to replace)")
        return False

    def restore_single_file(self, file_data: FileData, target_path: Path) -> None:
        """Write one file and apply its captured mode and mtime."""
        if file_data.content is None:
            raise RestoreError(
                f"File content is missing for {file_data.filename}; the backup is corrupted or still encrypted"
            )

        if not file_data.content:
            logger.warning(f"Restoring empty file {file_data.filename}; this may indicate a backup issue")

        mode = self.appropriate_permissions(file_data)

        if os.path.lexists(target_path):
            # make sure a read-only file can be replaced
            try:
                os.chmod(target_path, FALLBACK_FILE_MODE)
            except OSError as e:
                logger.warning(f"Failed to make {target_path.name} writable before overwrite: {e}")

        try:
            fd = os.open(target_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FALLBACK_FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(file_data.content)
            os.chmod(target_path, mode)
        except OSError as e:
            raise RestoreError(f"Failed to restore file {file_data.filename}: {e}") from e

        actual = os.stat(target_path).st_mode & 0o777
        if actual != mode:
            logger.error(
                f"Permission check failed after restore of {target_path.name}: "
                f"expected {format_mode(mode)}, got {format_mode(actual)}"
            )
        check_file_permissions(file_data.filename, actual, file_data.key_info)

        try:
            os.utime(target_path, (time.time(), file_data.mod_time.timestamp()))
        except OSError as e:
            logger.warning(f"Failed to restore modification time of {target_path.name}: {e}")

        logger.info(f"Restored {file_data.filename} to {target_path} (mode {format_mode(mode)})")

    @staticmethod
    def appropriate_permissions(file_data: FileData) -> int:
        """The captured mode, or 0600 when the backup recorded no bits at all."""
        mode = file_data.permissions & 0o777
        if mode == 0:
            logger.critical(
                f"Original permissions of {file_data.filename} are 0000, which indicates a corrupted "
                f"backup; falling back to {format_mode(FALLBACK_FILE_MODE)}"
            )
            return FALLBACK_FILE_MODE
        return mode

    def verify_restore_permissions(
        self,
        backup: BackupData,
        target_dir: Union[str, Path],
    ) -> PermissionReport:
        """Check restored modes on disk.

        Raises PermissionVerificationError when any critical issue is found;
        otherwise returns the report with its warnings.
        """
        target = expand_user_path(str(target_dir))
        logger.info(f"Verifying restored file permissions in {target}")

        report = PermissionReport()

        try:
            dir_mode = target.stat().st_mode & 0o777
        except OSError as e:
            report.critical.append(f"Cannot stat SSH directory {target}: {e}")
        else:
            if dir_mode != SSH_DIR_MODE:
                report.critical.append(
                    f"SSH directory has incorrect permissions {format_mode(dir_mode)} (should be 0700)"
                )

        for filename in sorted(backup.files):
            file_data = backup.files[filename]
            target_path = target / filename

            try:
                actual = os.stat(target_path).st_mode & 0o777
            except OSError as e:
                report.warnings.append(f"{filename}: cannot stat file: {e}")
                continue

            if file_data.key_type == KeyType.PRIVATE and actual & 0o077:
                report.critical.append(
                    f"{filename}: private key has group/world permissions {format_mode(actual)}"
                )
                continue

            expected = self.appropriate_permissions(file_data)
            if actual != expected:
                report.warnings.append(
                    f"{filename}: permission mismatch, expected {format_mode(expected)}, got {format_mode(actual)}"
                )

        for issue in report.critical:
            logger.error(f"Critical permission issue: {issue}")
        for issue in report.warnings:
            logger.warning(f"Permission warning: {issue}")

        if report.critical:
            raise PermissionVerificationError(len(report.critical))

        if report.warnings:
            logger.warning(f"Permission verification completed with {len(report.warnings)} warnings")
        else:
            logger.info("All file permissions verified successfully")

        return report
