"""
Timestamp helpers.

Records store UTC ISO-8601 strings so SQLite and JSON agree on one format.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return utc_now().isoformat(timespec="milliseconds")

