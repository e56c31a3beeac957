"""Tests for reading and checksumming SSH files."""

import hashlib
import logging
import os
from datetime import datetime, timezone

import pytest

from sshkeeper.analyzer import AnalyzerService
from sshkeeper.backup import FileData, ReadService
from sshkeeper.errors import IntegrityError, ValidationError

from .conftest import PRIVATE_KEY, write_file


class TestReadSSHDirectory:
    """Test reading whole directories."""

    def test_reads_all_regular_files(self, ssh_dir):
        (ssh_dir / "subdir").mkdir()

        files = ReadService().read_ssh_directory(ssh_dir)

        assert sorted(files) == ["config", "id_rsa", "id_rsa.pub"]

    def test_file_data(self, ssh_dir):
        files = ReadService().read_ssh_directory(ssh_dir)
        private = files["id_rsa"]

        assert private.content == PRIVATE_KEY
        assert private.permissions == 0o600
        assert private.size == len(PRIVATE_KEY)
        assert private.checksum == hashlib.sha256(PRIVATE_KEY).hexdigest()
        assert private.key_info is None

    def test_invalid_directory(self, tmp_path):
        with pytest.raises(ValidationError):
            ReadService().read_ssh_directory(tmp_path / "missing")

    def test_empty_path(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            ReadService().validate_directory("")

    def test_large_file_warning(self, ssh_dir, caplog):
        write_file(ssh_dir, "huge", b"x" * 2048, 0o600)

        with caplog.at_level(logging.WARNING, logger="sshkeeper"):
            ReadService(max_file_size=1024).read_file(ssh_dir / "huge")

        assert "unusually large" in caplog.text


class TestChecksums:
    """Test checksum calculation and integrity checks."""

    def test_default_sha256(self):
        assert ReadService().calculate_checksum(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_configurable_algorithm(self):
        assert ReadService("sha512").calculate_checksum(b"abc") == hashlib.sha512(b"abc").hexdigest()

    def test_integrity_ok(self, ssh_dir):
        reader = ReadService()
        file_data = reader.read_file(ssh_dir / "id_rsa")

        reader.validate_file_integrity(file_data)

    def test_mutated_content_fails(self, ssh_dir):
        reader = ReadService()
        file_data = reader.read_file(ssh_dir / "id_rsa")
        file_data.content = file_data.content + b"tampered"

        with pytest.raises(IntegrityError, match="Checksum mismatch"):
            reader.validate_file_integrity(file_data)

    def test_missing_content_fails(self):
        file_data = FileData(filename="x", permissions=0o600, checksum="00")

        with pytest.raises(IntegrityError, match="missing"):
            ReadService().validate_file_integrity(file_data)


class TestPermissionsAndStats:
    """Test permission checks and file statistics."""

    def test_verify_file_permissions(self, ssh_dir):
        ReadService().verify_file_permissions(ssh_dir / "id_rsa", 0o600)

    def test_verify_file_permissions_mismatch(self, ssh_dir):
        with pytest.raises(ValidationError, match="0644"):
            ReadService().verify_file_permissions(ssh_dir / "id_rsa.pub", 0o600)

    def test_add_key_info(self, ssh_dir):
        reader = ReadService()
        files = reader.read_ssh_directory(ssh_dir)
        analysis = AnalyzerService().analyze_directory(ssh_dir)

        reader.add_key_info_to_files(files, analysis)

        assert all(f.key_info is not None for f in files.values())
        assert files["config"].key_info.filename == "config"

    def test_file_stats(self):
        early = datetime(2023, 1, 1, tzinfo=timezone.utc)
        late = datetime(2024, 6, 1, tzinfo=timezone.utc)
        files = {
            "a": FileData(filename="a", permissions=0o600, size=100, mod_time=early),
            "b": FileData(filename="b", permissions=0o644, size=300, mod_time=late),
            "c": FileData(filename="c", permissions=0o600, size=200, mod_time=late),
        }

        stats = ReadService.file_stats(files)

        assert stats["file_count"] == 3
        assert stats["total_size"] == 600
        assert stats["average_size"] == 200
        assert stats["oldest_file"] == "2023-01-01T00:00:00Z"
        assert stats["newest_file"] == "2024-06-01T00:00:00Z"
        assert stats["permission_counts"] == {"0600": 2, "0644": 1}

    def test_file_stats_empty(self):
        assert ReadService.file_stats({})["file_count"] == 0

    def test_mode_masked_to_permission_bits(self, ssh_dir):
        os.chmod(ssh_dir / "config", 0o640)

        assert ReadService().read_file(ssh_dir / "config").permissions == 0o640
