"""SQLite connections to huddle.db: one per thread per database file, migrated once."""

import contextvars
import logging
import sqlite3
import threading
import time
from pathlib import Path

from huddle.lib import paths
from huddle.lib.store import migrations

logger = logging.getLogger(__name__)

DB_FILE = "huddle.db"
BUSY_TIMEOUT = 5.0
OPEN_ATTEMPTS = 5

_local = threading.local()
_migrated: set[Path] = set()
_migrate_lock = threading.Lock()

# Tests point this at a temporary directory instead of paths.dot_huddle().
_db_dir_override: contextvars.ContextVar[Path | None] = contextvars.ContextVar(
    "huddle_db_dir", default=None
)


def connect(db_path: Path) -> sqlite3.Connection:
    """Open an autocommit WAL connection usable from any thread.

    Switching to WAL needs a moment of exclusive access, so opening retries
    with a short backoff while another process holds the lock.
    """
    attempt = 0
    while True:
        attempt += 1
        conn = sqlite3.connect(
            db_path, timeout=BUSY_TIMEOUT, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.OperationalError as e:
            conn.close()
            if "locked" not in str(e).lower() or attempt >= OPEN_ATTEMPTS:
                raise
            logger.debug(f"{db_path} locked, retrying open ({attempt}/{OPEN_ATTEMPTS})")
            time.sleep(0.05 * attempt)
            continue
        return conn


def db_path() -> Path:
    return (_db_dir_override.get() or paths.dot_huddle()) / DB_FILE


def _connections() -> dict[Path, sqlite3.Connection]:
    if not hasattr(_local, "connections"):
        _local.connections = {}
    return _local.connections


def ensure() -> sqlite3.Connection:
    """This thread's connection to huddle.db, creating and migrating the file on first use."""
    path = db_path()
    cached = _connections()
    if path in cached:
        return cached[path]

    path.parent.mkdir(parents=True, exist_ok=True)
    conn = connect(path)
    with _migrate_lock:
        if path not in _migrated:
            migrations.migrate(conn, migrations.load_migrations())
            _migrated.add(path)
    cached[path] = conn
    return conn


def close_all() -> None:
    """Close this thread's connections."""
    cached = _connections()
    for conn in cached.values():
        conn.close()
    cached.clear()


def set_test_db_path(db_dir: Path | None) -> None:
    """Keep huddle.db in db_dir instead of ~/.huddle. None clears it."""
    _db_dir_override.set(db_dir)


def _reset_for_testing() -> None:
    _db_dir_override.set(None)
    close_all()
    with _migrate_lock:
        _migrated.clear()
