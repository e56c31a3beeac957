"""Match private and public key files into pairs."""

from typing import Dict, Iterable

from ..util.logging import get_logger
from .types import KeyInfo, KeyPairInfo, KeyType

logger = get_logger(__name__)

KEY_SUFFIXES = (".pub", ".pem", ".rsa", ".dsa", ".ecdsa", ".ed25519")


def get_base_name(filename: str) -> str:
    """Strip one known key suffix from a filename.

    When several suffixes match, the longest one is removed. A name made only
    of the suffix (``.pub``) is returned unchanged.
    """
    matching = [
        suffix for suffix in KEY_SUFFIXES
        if filename.endswith(suffix) and len(filename) > len(suffix)
    ]
    if not matching:
        return filename

    suffix = max(matching, key=len)
    return filename[:-len(suffix)]


def find_key_pairs(keys: Iterable[KeyInfo]) -> Dict[str, KeyPairInfo]:
    """Group private/public keys by base name.

    Each pair has one private and one public slot. A later key for a slot that
    is already filled replaces the earlier one; callers pass keys in sorted
    filename order so the outcome is stable.
    """
    pairs: Dict[str, KeyPairInfo] = {}

    for key in keys:
        if not key.type.is_key:
            continue

        base_name = get_base_name(key.filename)
        pair = pairs.setdefault(base_name, KeyPairInfo(base_name=base_name))

        if key.type == KeyType.PRIVATE:
            if pair.private_key_file is not None:
                logger.warning(
                    f"Private key {key.filename} replaces {pair.private_key_file} in pair '{base_name}'"
                )
            pair.private_key_file = key.filename
        else:
            if pair.public_key_file is not None:
                logger.warning(
                    f"Public key {key.filename} replaces {pair.public_key_file} in pair '{base_name}'"
                )
            pair.public_key_file = key.filename

    return pairs
