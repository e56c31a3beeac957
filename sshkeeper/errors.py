"""Exception types shared across SSH Secret Keeper."""


class SSHKeeperError(Exception):
    """Base class for all SSH Secret Keeper errors."""
    pass


class ValidationError(SSHKeeperError):
    """Input rejected before any I/O or cryptographic work."""
    pass


class IntegrityError(SSHKeeperError):
    """Stored checksum does not match the file content."""
    pass


class DecryptionError(SSHKeeperError):
    """Authenticated decryption failed (wrong passphrase or tampered data)."""
    pass


class RestoreError(SSHKeeperError):
    """A restore call had to abort."""
    pass


class StorageError(SSHKeeperError):
    """Backup store operation failed."""
    pass


class PermissionVerificationError(SSHKeeperError):
    """Critical permission issues were found after a restore."""

    def __init__(self, issues: int, message: str = ""):
        self.issues = issues
        super().__init__(message or f"found {issues} critical permission issues after restore")
