"""
SSH Secret Keeper - classify, encrypt, back up and restore SSH credentials.

A small toolkit for moving SSH identity material between machines:
- Detection and classification of keys, config and known_hosts files
- Per-file AES-256-GCM encryption with PBKDF2 key derivation
- Permission-exact restore with conflict handling
"""

__version__ = "0.1.0"
__author__ = "SSH Secret Keeper Contributors"
