"""UTC time utilities.

Order timestamps are unix seconds: expiration is compared homomorphically
against a trivially-encrypted EUINT64 "now", so plaintext times stay integers.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Current UTC time in whole seconds."""
    return int(utc_now().timestamp())
