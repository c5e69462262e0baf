"""
Authentication utilities.

Helper functions shared across the identity core.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    All datetime operations must use timezone-aware datetimes.

    Example:
        >>> now = utcnow()
        >>> now.tzinfo is not None
        True
    """
    return datetime.now(timezone.utc)


def normalize_email(email: Optional[str]) -> str:
    """
    Canonical form used for storage and comparison.

    Email is compared case-insensitively; surrounding whitespace is dropped.

    Example:
        >>> normalize_email("  Alice@Example.COM ")
        'alice@example.com'
    """
    return (email or "").strip().lower()
