"""Timestamps and timestamp-derived identifiers."""

import threading
import time

_lock = threading.Lock()
_last_ms = 0


def now_seconds() -> int:
    return int(time.time())


def now_millis() -> int:
    return int(time.time() * 1000)


def unique_millis() -> int:
    """Current time in milliseconds, strictly increasing within this process.

    Two calls in the same millisecond get consecutive values, so ids built
    from the result never collide.
    """
    global _last_ms  # noqa: PLW0603
    with _lock:
        _last_ms = max(now_millis(), _last_ms + 1)
        return _last_ms
