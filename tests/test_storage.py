"""Tests for the local backup store."""

import os

import pytest

from sshkeeper.backup import BackupData, FileBackupStore
from sshkeeper.errors import StorageError

from .conftest import PASSPHRASE


@pytest.fixture
def store(tmp_path):
    store = FileBackupStore(tmp_path / "backups")
    store.test_connection()
    return store


class TestFileBackupStore:
    """Test storing and loading records."""

    def test_provider_info(self, store, tmp_path):
        assert store.provider_type == "file"
        assert store.base_path == str(tmp_path / "backups")

    def test_store_and_get(self, store):
        record = {"version": "1.0", "files": {"id_rsa": {"permissions": 0o600}}}

        store.store_backup("backup-1", record)

        assert store.get_backup("backup-1") == record

    def test_file_modes(self, store):
        store.store_backup("backup-1", {"version": "1.0"})

        backup_dir = store.root / "backup-1"
        assert os.stat(backup_dir).st_mode & 0o777 == 0o700
        assert os.stat(backup_dir / "backup.yaml").st_mode & 0o777 == 0o600

    def test_list_and_latest(self, store):
        for name in ("backup-20240102-000000", "backup-20240101-000000", "backup-20240103-000000"):
            store.store_backup(name, {"version": "1.0"})
        (store.root / "stray").mkdir()

        assert store.list_backups() == [
            "backup-20240101-000000", "backup-20240102-000000", "backup-20240103-000000",
        ]
        assert store.latest_backup_name() == "backup-20240103-000000"

    def test_latest_when_empty(self, store):
        assert store.latest_backup_name() is None

    def test_delete(self, store):
        store.store_backup("gone", {"version": "1.0"})

        store.delete_backup("gone")

        assert store.list_backups() == []

    def test_missing_backup(self, store):
        with pytest.raises(StorageError, match="not found"):
            store.get_backup("nope")
        with pytest.raises(StorageError, match="not found"):
            store.delete_backup("nope")

    def test_invalid_name(self, store):
        with pytest.raises(StorageError, match="Invalid backup name"):
            store.store_backup("../escape", {})

    def test_reopen_after_close(self, store):
        store.store_backup("backup-1", {"version": "1.0"})
        store.close()

        reopened = FileBackupStore(store.root)

        assert reopened.get_backup("backup-1") == {"version": "1.0"}

    def test_metadata(self, store):
        assert store.get_metadata() == {}

        store.store_metadata({"created_by": "tests"})

        assert store.get_metadata() == {"created_by": "tests"}


class TestBackupRecordPersistence:
    """Test full backup records through YAML."""

    def test_encrypted_backup_round_trip(self, store, builder, ssh_dir):
        backup = builder.read_directory(ssh_dir)
        builder.encrypt_backup(backup, PASSPHRASE)

        store.store_backup("backup-1", backup.to_record())
        loaded = BackupData.from_record(store.get_backup("backup-1"))
        builder.decrypt_backup(loaded, PASSPHRASE)

        assert loaded.files["id_rsa"].permissions == 0o600
        assert loaded.files["id_rsa.pub"].permissions == 0o644
        assert loaded.files["config"].content == (ssh_dir / "config").read_bytes()
        assert loaded.analysis.key_pairs["id_rsa"].is_complete
