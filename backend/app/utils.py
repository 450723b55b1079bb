"""Time helpers shared by models and services."""
from datetime import datetime

import pytz


def utcnow() -> datetime:
    """Return a naive UTC datetime."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an instant to naive UTC for storage.

    Naive inputs are taken to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)
