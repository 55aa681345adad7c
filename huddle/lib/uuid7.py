from __future__ import annotations

import secrets
import threading
import time
import uuid as _uuid

# Monotonic state for same-millisecond IDs (RFC 9562 Method 2)
_state_lock = threading.Lock()
_last_timestamp_ms = 0
_counter = 0

_USE_NATIVE = hasattr(_uuid, "uuid7")


def uuid7() -> str:
    """Generate UUID v7 (time-ordered) so store keys sort by creation."""
    if _USE_NATIVE:
        return str(_uuid.uuid7())

    global _last_timestamp_ms, _counter

    with _state_lock:
        timestamp_ms = int(time.time() * 1000)

        if timestamp_ms <= _last_timestamp_ms:
            # Same millisecond (or clock stepped back): bump the counter, carry into the timestamp
            _counter += 1
            if _counter > 0xFFF:
                _counter = 0
                _last_timestamp_ms += 1
            timestamp_ms = _last_timestamp_ms
        else:
            _counter = secrets.randbits(11)
            _last_timestamp_ms = timestamp_ms

        time_high = (timestamp_ms >> 16) & 0xFFFFFFFF
        time_low = timestamp_ms & 0xFFFF

        # Version field: 0111 (7) in bits 12-15
        time_low_and_version = (time_low << 16) | (7 << 12) | _counter

        # Variant field: 10, followed by 62 random bits
        variant_and_rand = (0b10 << 62) | secrets.randbits(62)

        uuid_int = (time_high << 96) | (time_low_and_version << 64) | variant_and_rand
        return str(_uuid.UUID(int=uuid_int))


__all__ = ["uuid7"]
