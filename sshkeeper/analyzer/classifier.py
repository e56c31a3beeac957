"""Assign service and purpose labels to detected files."""

import fnmatch
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..util.logging import get_logger
from .types import KeyInfo, KeyPurpose

logger = get_logger(__name__)

DEFAULT_SERVICE_PATTERNS: Dict[str, List[str]] = {
    "github": ["*github*", "*gh_*"],
    "gitlab": ["*gitlab*", "*gl_*"],
    "bitbucket": ["*bitbucket*", "*bb_*"],
    "argocd": ["*argocd*", "*argo*"],
    "quay": ["*quay*"],
    "gke": ["*gke*", "*gcp*", "*google*"],
    "aws": ["*aws*", "*ec2*", "*amazon*"],
    "azure": ["*azure*", "*az_*"],
    "docker": ["*docker*", "*registry*"],
    "kubernetes": ["*k8s*", "*kube*"],
    "jenkins": ["*jenkins*", "*ci_*"],
    "terraform": ["*terraform*", "*tf_*"],
    "ansible": ["*ansible*"],
    "vault": ["*vault*", "*hvac*"],
    "consul": ["*consul*"],
    "nomad": ["*nomad*"],
}

DEFAULT_PURPOSE_RULES: Dict[str, str] = {
    # Work
    "*work*": "work",
    "*corp*": "work",
    "*company*": "work",
    "*office*": "work",
    "*business*": "work",
    # Personal
    "*personal*": "personal",
    "*home*": "personal",
    "*private*": "personal",
    "id_rsa": "personal",
    "id_ecdsa": "personal",
    "id_ed25519": "personal",
    # Cloud
    "*cloud*": "cloud",
    "*gcp*": "cloud",
    "*aws*": "cloud",
    "*azure*": "cloud",
    "*digital*": "cloud",
    "*linode*": "cloud",
    "*vultr*": "cloud",
}


class KeyClassifier:
    """Glob-rule classifier for service and purpose.

    Precedence is service patterns, then purpose rules, then a default by file
    type. Within each level rules are tried in declaration order and the first
    match wins.
    """

    def __init__(
        self,
        service_patterns: Optional[Mapping[str, Sequence[str]]] = None,
        purpose_rules: Optional[Mapping[str, Union[str, KeyPurpose]]] = None,
    ):
        if service_patterns is None:
            service_patterns = DEFAULT_SERVICE_PATTERNS
        if purpose_rules is None:
            purpose_rules = DEFAULT_PURPOSE_RULES

        self._service_rules: Tuple[Tuple[str, str], ...] = tuple(
            (pattern.lower(), service)
            for service, patterns in service_patterns.items()
            for pattern in patterns
        )
        self._purpose_rules: Tuple[Tuple[str, KeyPurpose], ...] = tuple(
            (pattern.lower(), KeyPurpose(purpose))
            for pattern, purpose in purpose_rules.items()
        )

    def detect_service(self, filename: str) -> Optional[str]:
        name = filename.lower()
        for pattern, service in self._service_rules:
            if fnmatch.fnmatchcase(name, pattern):
                return service
        return None

    def detect_purpose(self, filename: str) -> Optional[KeyPurpose]:
        name = filename.lower()
        for pattern, purpose in self._purpose_rules:
            if fnmatch.fnmatchcase(name, pattern):
                return purpose
        return None

    def classify(self, key_info: KeyInfo) -> KeyInfo:
        """Return a copy of ``key_info`` with service and purpose filled in."""
        service = self.detect_service(key_info.filename)
        if service is not None:
            return key_info.model_copy(update={"service": service, "purpose": KeyPurpose.SERVICE})

        purpose = self.detect_purpose(key_info.filename)
        if purpose is None:
            purpose = KeyPurpose.SYSTEM if key_info.type.is_system else KeyPurpose.PERSONAL

        return key_info.model_copy(update={"service": None, "purpose": purpose})
