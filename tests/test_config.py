"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError as ModelValidationError

from sshkeeper.analyzer import DetectorChain, KeyClassifier
from sshkeeper.config import KeeperConfig, load_config, save_config


class TestConfig:
    """Test configuration defaults and persistence."""

    def test_defaults(self):
        config = KeeperConfig()

        assert config.backup.ssh_dir == "~/.ssh"
        assert config.backup.hash_algorithm == "sha256"
        assert config.security.algorithm == "AES-256-GCM"
        assert config.security.iterations == 100000
        assert config.detectors.enabled[-1] == "universal"
        assert config.log_level == "INFO"

    def test_load_creates_default(self, tmp_path):
        path = tmp_path / "conf" / "config.yaml"

        config = load_config(path)

        assert path.exists()
        assert config == KeeperConfig()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = KeeperConfig()
        config.security.iterations = 200000
        config.storage.backup_root = tmp_path / "backups"
        config.detectors.service_patterns = {"corp-git": ["*corpgit*"]}

        save_config(config, path)
        loaded = load_config(path)

        assert loaded.security.iterations == 200000
        assert loaded.storage.backup_root == tmp_path / "backups"
        assert loaded.detectors.service_patterns == {"corp-git": ["*corpgit*"]}

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("log_level: DEBUG\nsecurity:\n  iterations: 50000\n")

        config = load_config(path)

        assert config.log_level == "DEBUG"
        assert config.security.iterations == 50000
        assert config.backup.ssh_dir == "~/.ssh"

    def test_unsupported_algorithm(self):
        with pytest.raises(ModelValidationError):
            KeeperConfig(security={"algorithm": "DES"})

    def test_config_drives_services(self):
        config = KeeperConfig(detectors={"enabled": ["config"], "service_patterns": {}, "purpose_rules": {}})

        chain = DetectorChain.from_names(config.detectors.enabled)
        classifier = KeyClassifier(config.detectors.service_patterns, config.detectors.purpose_rules)

        assert chain.names == ["config", "universal"]
        assert classifier.detect_service("github_key") is None
