# PATH: core/time.py
"""
Time utilities for poolhunter.

Wall-clock helpers for deadlines and monotonic helpers for latency.
Latency is always measured on the monotonic clock.
"""

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_timestamp() -> int:
    """Get current Unix timestamp in whole seconds."""
    return int(time.time())


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def monotonic() -> float:
    """Monotonic clock in seconds."""
    return time.monotonic()


def elapsed_ms(since: float, until: float | None = None) -> int:
    """
    Milliseconds elapsed between two monotonic readings.

    Args:
        since: Earlier monotonic() value
        until: Later monotonic() value (defaults to now)
    """
    end = monotonic() if until is None else until
    return max(0, int((end - since) * 1000))


def deadline_from_now(window_seconds: int, current_time: int | None = None) -> int:
    """Unix timestamp `window_seconds` in the future."""
    base = now_timestamp() if current_time is None else current_time
    return base + window_seconds
