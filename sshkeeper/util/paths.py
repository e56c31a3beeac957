"""Utility functions for path operations."""

import os
import re
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional

from ..util.logging import get_logger

logger = get_logger(__name__)

# Home directory roots recognised on other machines.
_UNIX_HOME_ROOTS = ("/home/", "/Users/")
_WINDOWS_USERS = re.compile(r"^[a-zA-Z]:\\users\\", re.IGNORECASE)


class PathNormalizer:
    """Convert SSH directory paths between absolute and home-relative forms.

    Backups store ``~/.ssh`` rather than ``/home/alice/.ssh`` so that they can
    be restored by another user or on another machine.
    """

    def __init__(self, home: Optional[Path] = None, windows: Optional[bool] = None):
        self._home = home
        self.windows = os.name == "nt" if windows is None else windows

    @property
    def home(self) -> Path:
        return self._home if self._home is not None else Path.home()

    def normalize_path(self, absolute_path: str) -> str:
        """Return the home-relative form of a path when one exists."""
        if self.is_relative_path(absolute_path):
            return absolute_path

        if self.windows:
            return self._normalize_windows_path(absolute_path)

        return self._normalize_unix_path(absolute_path)

    def resolve_path(self, path: str) -> str:
        """Expand ``~`` against the home directory, absolutize everything else."""
        if path == "~":
            return str(self.home)

        if path.startswith("~/"):
            return str(self.home / path[2:])

        return os.path.abspath(path)

    @staticmethod
    def is_relative_path(path: str) -> bool:
        return path == "~" or path.startswith("~/")

    def _normalize_unix_path(self, absolute_path: str) -> str:
        path = PurePosixPath(absolute_path)
        home = PurePosixPath(str(self.home))

        relative = _relative_to(path, home)
        if relative is not None:
            return _tilde(relative.as_posix())

        # /home/<user>/... and /Users/<user>/... from another machine
        for root in _UNIX_HOME_ROOTS:
            if absolute_path.startswith(root):
                parts = absolute_path[len(root):].strip("/").split("/")
                if parts and parts[0]:
                    return _tilde("/".join(parts[1:]))

        relative = _relative_to(path, PurePosixPath("/root"))
        if relative is not None:
            return _tilde(relative.as_posix())

        return absolute_path

    def _normalize_windows_path(self, absolute_path: str) -> str:
        path = PureWindowsPath(absolute_path)
        home = PureWindowsPath(str(self.home))

        # PureWindowsPath comparison is case-insensitive
        relative = _relative_to(path, home)
        if relative is not None:
            return _tilde(relative.as_posix())

        if _WINDOWS_USERS.match(str(path)):
            # drive, "Users", username, rest...
            rest = path.parts[3:]
            return _tilde("/".join(rest))

        return absolute_path


def _relative_to(path, base):
    try:
        return path.relative_to(base)
    except ValueError:
        return None


def _tilde(relative: str) -> str:
    if relative in ("", "."):
        return "~"
    return f"~/{relative}"


def expand_user_path(path: str) -> Path:
    """Expand a leading ``~`` and return a Path."""
    return Path(path).expanduser()


def ensure_directory(path: Path, mode: int = 0o700) -> Path:
    """Ensure directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True, mode=mode)
    return path


def sanitize_path_component(component: str) -> str:
    """Make a single path component safe for use as a file or directory name."""
    safe_name = re.sub(r'[/\\:*?"<>|\s]', "_", component)

    # Remove leading/trailing underscores and dots
    safe_name = safe_name.strip("_.")

    if not safe_name:
        safe_name = "unknown"

    return safe_name


def is_plain_filename(name: str) -> bool:
    """True if ``name`` is a single path component that stays inside its directory."""
    if not name or name in (".", ".."):
        return False
    if "/" in name or "\\" in name or "\0" in name:
        return False
    # drive-relative names such as "C:key"
    return not PureWindowsPath(name).drive


def format_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    size = float(size_bytes)
    i = 0
    while size >= 1024.0 and i < len(size_names) - 1:
        size /= 1024.0
        i += 1

    return f"{size:.1f} {size_names[i]}"


def format_mode(mode: int) -> str:
    """Format permission bits as a zero-padded octal string (``0600``)."""
    return f"{mode & 0o777:04o}"
