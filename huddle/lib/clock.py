"""Process-wide strictly increasing wall-clock timestamps."""

import threading
from datetime import UTC, datetime, timedelta

_lock = threading.Lock()
_last: datetime | None = None


def now() -> str:
    """ISO-8601 UTC timestamp, strictly greater than any previously returned.

    Fixed width (microseconds, +00:00 offset) so timestamps compare correctly as strings.
    """
    global _last
    with _lock:
        current = datetime.now(UTC)
        if _last is not None and current <= _last:
            current = _last + timedelta(microseconds=1)
        _last = current
        return current.isoformat(timespec="microseconds")


def parse(timestamp: str) -> datetime:
    return datetime.fromisoformat(timestamp)


def local_time(timestamp: str, fmt: str = "%H:%M:%S") -> str:
    try:
        return parse(timestamp).astimezone().strftime(fmt)
    except (ValueError, TypeError):
        return timestamp
