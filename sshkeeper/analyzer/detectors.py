"""Pluggable detectors that recognise SSH file types."""

from typing import Iterable, List, Optional, Sequence, Tuple

from ..util.logging import get_logger
from .pairing import get_base_name
from .types import KeyFormat, KeyInfo, KeyType

logger = get_logger(__name__)

# Bytes read from the start of each file for detection
CONTENT_PREFIX_SIZE = 4096

RSA_PRIVATE_MARKER = b"BEGIN RSA PRIVATE KEY"
OPENSSH_PRIVATE_MARKER = b"BEGIN OPENSSH PRIVATE KEY"
PKCS8_PRIVATE_MARKER = b"BEGIN PRIVATE KEY"
EC_PRIVATE_MARKER = b"BEGIN EC PRIVATE KEY"
CERTIFICATE_MARKER = b"BEGIN CERTIFICATE"


class KeyDetector:
    """Base class for file detectors."""

    name = ""

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        """Return a KeyInfo when this detector claims the file."""
        raise NotImplementedError

    def related_files(self, key_info: KeyInfo, all_files: Sequence[str]) -> List[str]:
        """Return other files that belong together with ``key_info``."""
        return []

    def _claim(self, filename: str, key_type: KeyType, key_format: KeyFormat) -> KeyInfo:
        return KeyInfo(filename=filename, type=key_type, format=key_format)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class _PairedKeyDetector(KeyDetector):
    """Detectors for key files whose partners share a base name."""

    def related_files(self, key_info: KeyInfo, all_files: Sequence[str]) -> List[str]:
        if not key_info.type.is_key:
            return []

        base_name = get_base_name(key_info.filename)
        return [
            name for name in all_files
            if name != key_info.filename and get_base_name(name) == base_name
        ]


class RSAKeyDetector(_PairedKeyDetector):
    """RSA private/public keys. Any ``*.pub`` file is a public key."""

    name = "rsa"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        lower_name = filename.lower()

        if lower_name.endswith(".pub"):
            return self._claim(filename, KeyType.PUBLIC, KeyFormat.RSA)

        if RSA_PRIVATE_MARKER in content or OPENSSH_PRIVATE_MARKER in content:
            return self._claim(filename, KeyType.PRIVATE, KeyFormat.RSA)

        if content.startswith(b"ssh-rsa "):
            return self._claim(filename, KeyType.PUBLIC, KeyFormat.RSA)

        if "rsa" in lower_name:
            return self._claim(filename, KeyType.PRIVATE, KeyFormat.RSA)

        return None


class PEMKeyDetector(KeyDetector):
    """PEM private keys and certificates."""

    name = "pem"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        has_private = any(
            marker in content
            for marker in (PKCS8_PRIVATE_MARKER, EC_PRIVATE_MARKER, RSA_PRIVATE_MARKER)
        )
        if not has_private and not filename.lower().endswith(".pem"):
            return None

        if CERTIFICATE_MARKER in content:
            return self._claim(filename, KeyType.CERTIFICATE, KeyFormat.PEM)

        return self._claim(filename, KeyType.PRIVATE, KeyFormat.PEM)


class OpenSSHKeyDetector(_PairedKeyDetector):
    """Ed25519, ECDSA and generic OpenSSH keys."""

    name = "openssh"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        if content.startswith(b"ssh-ed25519 "):
            return self._claim(filename, KeyType.PUBLIC, KeyFormat.ED25519)

        if (
            content.startswith(b"ssh-ecdsa ")
            or content.startswith(b"ecdsa-sha2-")
            or EC_PRIVATE_MARKER in content
        ):
            key_type = KeyType.PRIVATE if b"PRIVATE" in content else KeyType.PUBLIC
            return self._claim(filename, key_type, KeyFormat.ECDSA)

        if OPENSSH_PRIVATE_MARKER in content:
            return self._claim(filename, KeyType.PRIVATE, KeyFormat.OPENSSH)

        return None


class ConfigFileDetector(KeyDetector):
    """SSH client configuration."""

    name = "config"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        if filename.lower() == "config":
            return self._claim(filename, KeyType.CONFIG, KeyFormat.CONFIG)

        lower_content = content.lower()
        if any(token in lower_content for token in (b"host ", b"hostname ", b"identityfile ")):
            return self._claim(filename, KeyType.CONFIG, KeyFormat.CONFIG)

        return None


class KnownHostsDetector(KeyDetector):
    """known_hosts files."""

    name = "known_hosts"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        if "known_hosts" in filename.lower():
            return self._claim(filename, KeyType.HOSTS, KeyFormat.HOSTS)

        # hostname followed by a key
        for line in content.split(b"\n"):
            if line and b" ssh-" in line:
                return self._claim(filename, KeyType.HOSTS, KeyFormat.HOSTS)

        return None

    def related_files(self, key_info: KeyInfo, all_files: Sequence[str]) -> List[str]:
        return [
            name for name in all_files
            if "known_hosts" in name.lower() and name != key_info.filename
        ]


class AuthorizedKeysDetector(KeyDetector):
    """authorized_keys files."""

    name = "authorized_keys"

    max_lines = 50

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        if "authorized_keys" in filename.lower():
            return self._claim(filename, KeyType.AUTHORIZED, KeyFormat.OPENSSH)

        lines = content.split(b"\n")
        key_lines = [line for line in lines if line.strip()]
        if (
            key_lines
            and len(lines) < self.max_lines
            and all(line.startswith(b"ssh-") for line in key_lines)
        ):
            return self._claim(filename, KeyType.AUTHORIZED, KeyFormat.OPENSSH)

        return None


class UniversalFileDetector(KeyDetector):
    """Claims every file the other detectors left over."""

    name = "universal"

    def detect(self, filename: str, content: bytes) -> Optional[KeyInfo]:
        return self._claim(filename, KeyType.UNKNOWN, KeyFormat.UNKNOWN)


def default_detectors() -> Tuple[KeyDetector, ...]:
    """All built-in detectors in priority order."""
    return (
        RSAKeyDetector(),
        PEMKeyDetector(),
        OpenSSHKeyDetector(),
        ConfigFileDetector(),
        KnownHostsDetector(),
        AuthorizedKeysDetector(),
        UniversalFileDetector(),
    )


class DetectorChain:
    """Immutable, ordered list of detectors; the first match wins."""

    def __init__(self, detectors: Optional[Iterable[KeyDetector]] = None):
        chain = list(default_detectors() if detectors is None else detectors)

        seen = set()
        for detector in chain:
            name = detector.name.strip().lower()
            if not name:
                raise ValueError(f"Detector {detector!r} has no name")
            if name in seen:
                raise ValueError(f"Detector {detector.name} already registered")
            seen.add(name)

        chain = [d for d in chain if not isinstance(d, UniversalFileDetector)]
        chain.append(UniversalFileDetector())

        self._detectors: Tuple[KeyDetector, ...] = tuple(chain)

    @classmethod
    def from_names(cls, enabled: Optional[Sequence[str]]) -> "DetectorChain":
        """Build a chain from the enabled built-in detector names.

        Priority order is always the built-in order, whatever the order of
        ``enabled``. An empty or missing list enables everything.
        """
        if not enabled:
            return cls()

        wanted = {name.strip().lower() for name in enabled}
        available = default_detectors()
        unknown = wanted - {d.name for d in available}
        if unknown:
            raise ValueError(f"Unknown detectors: {', '.join(sorted(unknown))}")

        return cls(d for d in available if d.name in wanted)

    @property
    def detectors(self) -> Tuple[KeyDetector, ...]:
        return self._detectors

    @property
    def names(self) -> List[str]:
        return [d.name for d in self._detectors]

    def detect(self, filename: str, content: bytes) -> Tuple[KeyInfo, KeyDetector]:
        """Classify a file; always returns a result thanks to the catch-all."""
        for detector in self._detectors:
            key_info = detector.detect(filename, content)
            if key_info is not None:
                logger.debug(f"File {filename} detected by '{detector.name}' as {key_info.type.value}")
                return key_info, detector

        # UniversalFileDetector is always last
        raise AssertionError("detector chain did not claim file")

    def __len__(self) -> int:
        return len(self._detectors)

    def __iter__(self):
        return iter(self._detectors)
