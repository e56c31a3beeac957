"""Utility functions for time operations."""

from datetime import datetime, timezone
from typing import Union


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_to_datetime(timestamp: Union[int, float]) -> datetime:
    """Convert a Unix timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, timezone.utc)


def format_rfc3339(dt: datetime) -> str:
    """Format a datetime as RFC3339, assuming UTC for naive values."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp (a trailing ``Z`` is accepted)."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Unable to parse timestamp: {value}")


def generate_backup_name() -> str:
    """Generate a backup name based on current time."""
    return datetime.now().strftime("backup-%Y%m%d-%H%M%S")
