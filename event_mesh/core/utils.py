"""
Core Utilities.

Shared clock and identifier helpers used across the service.
All modules should import utilities from this module.
"""

import time
from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application should be timezone-naive
    and assumed to be UTC. This ensures consistent behavior across
    the codebase and simplifies database storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    """Return the current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000


def new_id() -> str:
    """Return a new globally unique identifier."""
    return str(uuid4())


def to_iso(value: datetime) -> str:
    """
    Format a naive-UTC datetime as an ISO-8601 string with a Z suffix.

    Millisecond precision, e.g. ``2024-05-01T12:30:00.123Z``.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
