"""Analyzer module initialization."""

from .classifier import DEFAULT_PURPOSE_RULES, DEFAULT_SERVICE_PATTERNS, KeyClassifier
from .detectors import (
    AuthorizedKeysDetector,
    ConfigFileDetector,
    DetectorChain,
    KeyDetector,
    KnownHostsDetector,
    OpenSSHKeyDetector,
    PEMKeyDetector,
    RSAKeyDetector,
    UniversalFileDetector,
    default_detectors,
)
from .pairing import KEY_SUFFIXES, find_key_pairs, get_base_name
from .service import AnalyzerService
from .types import (
    AnalysisSummary,
    DetectionResult,
    KeyFormat,
    KeyInfo,
    KeyPairInfo,
    KeyPurpose,
    KeyType,
)

__all__ = [
    # types
    "AnalysisSummary",
    "DetectionResult",
    "KeyFormat",
    "KeyInfo",
    "KeyPairInfo",
    "KeyPurpose",
    "KeyType",
    # detectors
    "AuthorizedKeysDetector",
    "ConfigFileDetector",
    "DetectorChain",
    "KeyDetector",
    "KnownHostsDetector",
    "OpenSSHKeyDetector",
    "PEMKeyDetector",
    "RSAKeyDetector",
    "UniversalFileDetector",
    "default_detectors",
    # classifier
    "DEFAULT_PURPOSE_RULES",
    "DEFAULT_SERVICE_PATTERNS",
    "KeyClassifier",
    # pairing
    "KEY_SUFFIXES",
    "find_key_pairs",
    "get_base_name",
    # service
    "AnalyzerService",
]
