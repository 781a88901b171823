"""Clock helpers shared by models and services."""

import time
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def epoch_millis() -> float:
    """Return the current time in milliseconds since the epoch."""
    return time.time() * 1000
