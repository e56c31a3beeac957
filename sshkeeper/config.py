"""Configuration management for SSH Secret Keeper."""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from ruamel.yaml import YAML

from .analyzer.classifier import DEFAULT_PURPOSE_RULES, DEFAULT_SERVICE_PATTERNS
from .analyzer.detectors import default_detectors
from .crypto.encryption import ALGORITHM, DEFAULT_ITERATIONS

DEFAULT_CONFIG_PATH = Path.home() / ".config/sshkeeper/config.yaml"


class BackupConfig(BaseModel):
    """Configuration for reading SSH directories."""

    ssh_dir: str = Field(default="~/.ssh", description="SSH directory to back up")
    hash_algorithm: str = Field(default="sha256", description="Hash algorithm for file integrity")
    verify_integrity: bool = Field(default=True, description="Verify checksums after decryption")
    max_file_size_mb: int = Field(default=10, description="Warn about files larger than this")
    normalize_paths: bool = Field(default=True, description="Store home-relative SSH directory paths")


class SecurityConfig(BaseModel):
    """Configuration for encryption."""

    algorithm: str = Field(default=ALGORITHM, description="Encryption algorithm")
    iterations: int = Field(default=DEFAULT_ITERATIONS, description="PBKDF2 iteration count")

    @field_validator("algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        if value != ALGORITHM:
            raise ValueError(f"unsupported algorithm: {value}")
        return value


class DetectorsConfig(BaseModel):
    """Configuration for file detection and classification."""

    enabled: List[str] = Field(
        default_factory=lambda: [d.name for d in default_detectors()],
        description="Detectors to run, always in built-in priority order"
    )
    service_patterns: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_SERVICE_PATTERNS.items()},
        description="Service name to filename glob patterns"
    )
    purpose_rules: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PURPOSE_RULES),
        description="Filename glob pattern to purpose"
    )


class StorageConfig(BaseModel):
    """Configuration for the local backup store."""

    backup_root: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/sshkeeper/backups",
        description="Root directory for backups"
    )


class KeeperConfig(BaseModel):
    """Main configuration for SSH Secret Keeper."""

    backup: BackupConfig = Field(default_factory=BackupConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    detectors: DetectorsConfig = Field(default_factory=DetectorsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    log_level: str = Field(default="INFO", description="Logging level")

    class Config:
        """Pydantic configuration."""

        validate_assignment = True


def load_config(config_path: Optional[Path] = None) -> KeeperConfig:
    """Load configuration from file or create default."""

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        yaml = YAML(typ="safe")
        with open(config_path, "r") as f:
            data = yaml.load(f) or {}
        return KeeperConfig(**data)
    else:
        config = KeeperConfig()
        save_config(config, config_path)
        return config


def save_config(config: KeeperConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_path.parent.mkdir(parents=True, exist_ok=True)

    yaml = YAML()
    yaml.default_flow_style = False

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(mode="json"), f)


def get_config() -> KeeperConfig:
    """Get the global configuration instance."""

    if not hasattr(get_config, "_config"):
        get_config._config = load_config()

    return get_config._config
