"""Backup record model."""

import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from ..analyzer.types import DetectionResult, KeyInfo, KeyType
from ..crypto.encryption import EncryptedData
from ..util.paths import is_plain_filename
from ..util.timeutil import now_utc

BACKUP_VERSION = "1.0"
PATH_VERSION = "2.0"


class FileData(BaseModel):
    """One file captured from an SSH directory.

    ``content`` holds the plaintext until the file is encrypted; afterwards it
    is ``None`` and the ciphertext lives in ``encrypted_data``. In the
    persisted record content is base64 encoded.
    """

    filename: str = Field(description="File name relative to the SSH directory")
    content: Optional[bytes] = Field(default=None, description="Plaintext content")
    permissions: int = Field(strict=True, ge=0, description="POSIX permission bits")
    size: int = Field(default=0, description="File size in bytes")
    mod_time: datetime = Field(default_factory=now_utc, description="Modification time")
    checksum: str = Field(default="", description="Hex digest of the plaintext")
    key_info: Optional[KeyInfo] = Field(default=None, description="Analysis result for this file")
    encrypted_data: Optional[EncryptedData] = Field(default=None, description="Encrypted content")

    class Config:
        """Pydantic configuration."""
        validate_assignment = True

    @field_validator("filename")
    @classmethod
    def _check_filename(cls, value: str) -> str:
        if not is_plain_filename(value):
            raise ValueError(f"filename must be a plain name inside the SSH directory: {value!r}")
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value):
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"content is not valid base64: {e}") from e
        return value

    @field_serializer("content", when_used="json")
    def _encode_content(self, content: Optional[bytes]) -> Optional[str]:
        if content is None:
            return None
        return base64.b64encode(content).decode("ascii")

    @property
    def is_encrypted(self) -> bool:
        return self.encrypted_data is not None

    @property
    def key_type(self) -> KeyType:
        """Type from the analysis, ``unknown`` when none was attached."""
        return self.key_info.type if self.key_info is not None else KeyType.UNKNOWN


class BackupData(BaseModel):
    """A complete backup of one SSH directory."""

    version: str = Field(default=BACKUP_VERSION, description="Record format version")
    timestamp: datetime = Field(default_factory=now_utc, description="Backup creation time")
    hostname: str = Field(default="", description="Host the backup was taken on")
    username: str = Field(default="", description="User the backup was taken as")
    ssh_dir: str = Field(default="", description="Absolute SSH directory path")
    ssh_dir_normalized: str = Field(default="", description="Home-relative SSH directory path")
    original_user: Optional[str] = Field(default=None, description="User the SSH directory belonged to")
    path_version: str = Field(default=PATH_VERSION, description="Path normalization scheme")
    files: Dict[str, FileData] = Field(default_factory=dict, description="Files by name")
    analysis: DetectionResult = Field(default_factory=DetectionResult, description="Directory analysis")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Backup statistics")

    @model_validator(mode="after")
    def _check_file_keys(self) -> "BackupData":
        for name, file_data in self.files.items():
            if name != file_data.filename:
                raise ValueError(f"file entry {name!r} holds data for {file_data.filename!r}")
        return self

    @property
    def is_encrypted(self) -> bool:
        return bool(self.metadata.get("encrypted")) or any(f.is_encrypted for f in self.files.values())

    def to_record(self) -> Dict[str, Any]:
        """Plain, JSON-compatible dict for storage."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BackupData":
        return cls.model_validate(record)


class RestoreOptions(BaseModel):
    """Knobs for a restore call. Defaults restore everything and skip conflicts."""

    dry_run: bool = Field(default=False, description="Report actions without touching disk")
    overwrite: bool = Field(default=False, description="Replace existing files")
    interactive: bool = Field(default=False, description="Ask before replacing existing files")
    file_filter: List[str] = Field(default_factory=list, description="Glob patterns on filenames")
    type_filter: List[KeyType] = Field(default_factory=list, description="Key types to restore")

    @field_validator("type_filter", mode="before")
    @classmethod
    def _parse_types(cls, value):
        if value is None:
            return []
        return [v if isinstance(v, KeyType) else KeyType.parse(v) for v in value]


class FileOutcome(str, Enum):
    """Terminal state of one file in a restore call."""

    RESTORED = "restored"
    SKIPPED = "skipped"
    WOULD_RESTORE = "would_restore"


class RestoreResult(BaseModel):
    """What a restore call did with each file."""

    outcomes: Dict[str, FileOutcome] = Field(default_factory=dict)

    def record(self, filename: str, outcome: FileOutcome) -> None:
        self.outcomes[filename] = outcome

    def _with(self, outcome: FileOutcome) -> List[str]:
        return sorted(name for name, o in self.outcomes.items() if o == outcome)

    @property
    def restored(self) -> List[str]:
        return self._with(FileOutcome.RESTORED)

    @property
    def skipped(self) -> List[str]:
        return self._with(FileOutcome.SKIPPED)

    @property
    def would_restore(self) -> List[str]:
        return self._with(FileOutcome.WOULD_RESTORE)


class PermissionReport(BaseModel):
    """Permission problems found on restored files."""

    critical: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.critical and not self.warnings
