"""Database connection management and the live keyed store."""

from huddle.lib.store.connection import (
    _reset_for_testing,
    close_all,
    connect,
    ensure,
    set_test_db_path,
)
from huddle.lib.store.live import LiveStore, Query, Snapshot

__all__ = [
    "ensure",
    "_reset_for_testing",
    "set_test_db_path",
    "close_all",
    "connect",
    "LiveStore",
    "Query",
    "Snapshot",
]
