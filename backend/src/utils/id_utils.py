"""Identifier and timestamp helpers."""

from datetime import UTC, datetime

from ulid import ULID


def new_id(prefix: str) -> str:
    """Generate a collision-resistant, time-ordered identifier.

    >>> new_id("C").startswith("C_")
    True
    """
    return f"{prefix}_{ULID()}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()
