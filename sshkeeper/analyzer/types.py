"""Data types produced by SSH directory analysis."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class KeyType(str, Enum):
    """Type of an SSH file."""

    PRIVATE = "private_key"
    PUBLIC = "public_key"
    CONFIG = "config"
    HOSTS = "known_hosts"
    AUTHORIZED = "authorized_keys"
    CERTIFICATE = "certificate"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: str) -> "KeyType":
        """Accept either the stored value or a short alias (``private``, ``hosts``...)."""
        normalized = name.strip().lower()
        aliases = {
            "private": cls.PRIVATE,
            "public": cls.PUBLIC,
            "hosts": cls.HOSTS,
            "authorized": cls.AUTHORIZED,
            "cert": cls.CERTIFICATE,
        }
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)

    @property
    def is_system(self) -> bool:
        return self in (KeyType.CONFIG, KeyType.HOSTS, KeyType.AUTHORIZED)

    @property
    def is_key(self) -> bool:
        return self in (KeyType.PRIVATE, KeyType.PUBLIC)


class KeyFormat(str, Enum):
    """Format or encoding of an SSH file."""

    RSA = "rsa"
    PEM = "pem"
    OPENSSH = "openssh"
    CONFIG = "ssh_config"
    HOSTS = "hosts"
    ED25519 = "ed25519"
    ECDSA = "ecdsa"
    UNKNOWN = "unknown"


class KeyPurpose(str, Enum):
    """Intended use of a key."""

    SERVICE = "service"
    PERSONAL = "personal"
    WORK = "work"
    CLOUD = "cloud"
    SYSTEM = "system"


class KeyInfo(BaseModel):
    """Classification of a single file in an SSH directory."""

    filename: str = Field(description="File name relative to the SSH directory")
    type: KeyType = Field(description="Detected file type")
    format: KeyFormat = Field(description="Detected key or file format")
    service: Optional[str] = Field(default=None, description="Service the key belongs to")
    purpose: KeyPurpose = Field(default=KeyPurpose.PERSONAL, description="Coarse intent of the key")
    permissions: int = Field(default=0, description="POSIX permission bits")
    size: int = Field(default=0, description="File size in bytes")
    mod_time: Optional[datetime] = Field(default=None, description="Modification time")
    related_files: Tuple[str, ...] = Field(default=(), description="Files related to this one")

    class Config:
        """Pydantic configuration."""
        frozen = True


class KeyPairInfo(BaseModel):
    """Private and public key files sharing a base name."""

    base_name: str
    private_key_file: Optional[str] = None
    public_key_file: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.private_key_file is not None and self.public_key_file is not None

    def status(self) -> str:
        if self.is_complete:
            return "complete pair"
        if self.private_key_file is not None:
            return "private key only"
        return "public key only"


class AnalysisSummary(BaseModel):
    """Counts describing an analyzed directory."""

    total_files: int = 0
    key_pair_count: int = 0
    service_keys: int = 0
    personal_keys: int = 0
    work_keys: int = 0
    system_files: int = 0
    unknown_files: int = 0
    format_breakdown: Dict[str, int] = Field(default_factory=dict)
    purpose_breakdown: Dict[str, int] = Field(default_factory=dict)


class DetectionResult(BaseModel):
    """Result of analyzing one SSH directory."""

    keys: List[KeyInfo] = Field(default_factory=list)
    key_pairs: Dict[str, KeyPairInfo] = Field(default_factory=dict)
    categories: Dict[str, List[KeyInfo]] = Field(default_factory=dict)
    system_files: List[KeyInfo] = Field(default_factory=list)
    unknown_files: List[KeyInfo] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)

    class Config:
        """Pydantic configuration."""
        frozen = True

    def get_key(self, filename: str) -> Optional[KeyInfo]:
        for key in self.keys:
            if key.filename == filename:
                return key
        return None

    @property
    def filenames(self) -> List[str]:
        return [key.filename for key in self.keys]
