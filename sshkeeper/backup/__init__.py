"""Backup module initialization."""

from .builder import BackupBuilder
from .models import (
    BackupData,
    FileData,
    FileOutcome,
    PermissionReport,
    RestoreOptions,
    RestoreResult,
)
from .reader import ReadService
from .restore import RestoreService, check_file_permissions
from .storage import BackupStore, FileBackupStore

__all__ = [
    # models
    "BackupData",
    "FileData",
    "FileOutcome",
    "PermissionReport",
    "RestoreOptions",
    "RestoreResult",
    # reader
    "ReadService",
    # builder
    "BackupBuilder",
    # restore
    "RestoreService",
    "check_file_permissions",
    # storage
    "BackupStore",
    "FileBackupStore",
]
