"""Utility module initialization."""

from .hashing import calculate_bytes_hash
from .logging import get_logger, setup_logging
from .paths import (
    PathNormalizer,
    ensure_directory,
    expand_user_path,
    format_mode,
    is_plain_filename,
    format_size,
    sanitize_path_component,
)
from .timeutil import (
    format_rfc3339,
    generate_backup_name,
    now_utc,
    parse_rfc3339,
    timestamp_to_datetime,
)

__all__ = [
    # hashing
    "calculate_bytes_hash",
    # logging
    "get_logger",
    "setup_logging",
    # paths
    "PathNormalizer",
    "ensure_directory",
    "expand_user_path",
    "format_mode",
    "is_plain_filename",
    "format_size",
    "sanitize_path_component",
    # timeutil
    "format_rfc3339",
    "generate_backup_name",
    "now_utc",
    "parse_rfc3339",
    "timestamp_to_datetime",
]
