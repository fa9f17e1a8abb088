"""UTC datetime utilities."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def epoch_seconds() -> float:
    """Wall-clock seconds since the epoch; the clock used for cache expiry."""
    return time.time()
