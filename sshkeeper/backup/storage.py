"""Backup storage backends."""

import os
import shutil
import typing as t
from abc import ABC, abstractmethod
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import StorageError
from ..util.logging import get_logger
from ..util.paths import ensure_directory, sanitize_path_component

logger = get_logger(__name__)

BACKUP_FILENAME = "backup.yaml"
METADATA_FILENAME = "metadata.yaml"

DIR_MODE = 0o700
FILE_MODE = 0o600


class BackupStore(ABC):
    """Where encrypted backup records are kept.

    Records are plain dicts as produced by ``BackupData.to_record``; a store
    must hand back exactly what it was given.
    """

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Short name of the backend."""

    @property
    @abstractmethod
    def base_path(self) -> str:
        """Location of the backups inside the backend."""

    @abstractmethod
    def test_connection(self) -> None:
        """Raise StorageError if the backend cannot be used."""

    @abstractmethod
    def store_backup(self, name: str, record: t.Dict[str, t.Any]) -> None:
        ...

    @abstractmethod
    def get_backup(self, name: str) -> t.Dict[str, t.Any]:
        ...

    @abstractmethod
    def list_backups(self) -> t.List[str]:
        ...

    @abstractmethod
    def delete_backup(self, name: str) -> None:
        ...

    @abstractmethod
    def store_metadata(self, metadata: t.Dict[str, t.Any]) -> None:
        ...

    @abstractmethod
    def get_metadata(self) -> t.Dict[str, t.Any]:
        ...

    def close(self) -> None:
        """Release backend resources."""

    def latest_backup_name(self) -> t.Optional[str]:
        """Name of the most recent backup, if any.

        Backup names embed their timestamp, so the lexically greatest name is
        the newest.
        """
        names = self.list_backups()
        return max(names) if names else None


class FileBackupStore(BackupStore):
    """Stores each backup as a YAML file on the local filesystem.

    Layout::

        <root>/metadata.yaml
        <root>/<name>/backup.yaml
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store.

        Args:
            root: Directory holding all backups
        """
        self.root = Path(root).expanduser()

    @property
    def provider_type(self) -> str:
        return "file"

    @property
    def base_path(self) -> str:
        return str(self.root)

    def test_connection(self) -> None:
        try:
            ensure_directory(self.root, mode=DIR_MODE)
        except OSError as e:
            raise StorageError(f"Cannot create backup root {self.root}: {e}") from e

        if not os.access(self.root, os.R_OK | os.W_OK | os.X_OK):
            raise StorageError(f"Backup root is not accessible: {self.root}")

    def get_backup_dir(self, name: str) -> Path:
        """Get the directory of a named backup.

        Args:
            name: Backup name

        Returns:
            Path to the backup directory
        """
        safe_name = sanitize_path_component(name)
        if safe_name != name:
            raise StorageError(f"Invalid backup name: {name!r}")
        return self.root / safe_name

    def store_backup(self, name: str, record: t.Dict[str, t.Any]) -> None:
        backup_dir = self.get_backup_dir(name)
        try:
            ensure_directory(backup_dir, mode=DIR_MODE)
            os.chmod(backup_dir, DIR_MODE)
            self._write_yaml(backup_dir / BACKUP_FILENAME, record)
        except OSError as e:
            raise StorageError(f"Failed to store backup {name}: {e}") from e

        logger.info(f"Stored backup {name} in {backup_dir}")

    def get_backup(self, name: str) -> t.Dict[str, t.Any]:
        backup_file = self.get_backup_dir(name) / BACKUP_FILENAME
        if not backup_file.exists():
            raise StorageError(f"Backup not found: {name}")

        record = self._read_yaml(backup_file)
        if not isinstance(record, dict):
            raise StorageError(f"Backup {name} is not a valid record")

        logger.debug(f"Loaded backup {name} from {backup_file}")
        return record

    def list_backups(self) -> t.List[str]:
        if not self.root.exists():
            return []

        names = [
            d.name for d in self.root.iterdir()
            if d.is_dir() and (d / BACKUP_FILENAME).is_file()
        ]
        return sorted(names)

    def delete_backup(self, name: str) -> None:
        backup_dir = self.get_backup_dir(name)
        if not backup_dir.exists():
            raise StorageError(f"Backup not found: {name}")

        try:
            shutil.rmtree(backup_dir)
        except OSError as e:
            raise StorageError(f"Failed to delete backup {name}: {e}") from e

        logger.info(f"Deleted backup {name}")

    def store_metadata(self, metadata: t.Dict[str, t.Any]) -> None:
        try:
            ensure_directory(self.root, mode=DIR_MODE)
            self._write_yaml(self.root / METADATA_FILENAME, metadata)
        except OSError as e:
            raise StorageError(f"Failed to store metadata: {e}") from e

    def get_metadata(self) -> t.Dict[str, t.Any]:
        metadata_file = self.root / METADATA_FILENAME
        if not metadata_file.exists():
            return {}
        return self._read_yaml(metadata_file) or {}

    def _write_yaml(self, path: Path, data: t.Dict[str, t.Any]) -> None:
        yaml = YAML()
        yaml.default_flow_style = False
        yaml.width = 120

        tmp_path = path.with_name(path.name + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "w") as f:
            yaml.dump(data, f)
        os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, path)

    def _read_yaml(self, path: Path) -> t.Any:
        yaml = YAML(typ="safe")
        try:
            with open(path, "r") as f:
                return yaml.load(f)
        except (OSError, YAMLError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
