"""Live keyed store: path-addressed JSON values with full-snapshot subscriptions.

Paths are '/'-separated. The last segment is the key; everything before it is the
collection. Subscriptions are per collection, optionally filtered on one indexed
field, and replay the complete matching set after every mutation that changes
it, in the order mutations are applied. Writes elsewhere in the collection that
leave the matching set as it was are not delivered.
"""

import contextlib
import json
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from huddle.errors import TransportError
from huddle.lib.store.connection import ensure
from huddle.lib.uuid7 import uuid7

logger = logging.getLogger(__name__)

Snapshot = dict[str, dict[str, Any]]
Callback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class Query:
    """Select a collection, optionally where `field` equals `equal_to`."""

    collection: str
    field: str | None = None
    equal_to: Any = None
    limit_to_last: int | None = None

    def __post_init__(self):
        if not self.collection or self.collection.strip("/") != self.collection:
            raise ValueError(f"Invalid collection: '{self.collection}'")
        if self.field is not None and not self.field.isidentifier():
            raise ValueError(f"Invalid field: '{self.field}'")
        if self.limit_to_last is not None and self.limit_to_last < 1:
            raise ValueError("limit_to_last must be positive")


@dataclass
class _Subscription:
    query: Query
    callback: Callback
    active: bool = True
    last: Snapshot | None = None


def split_path(path: str) -> tuple[str, str]:
    parts = path.strip("/").split("/")
    if len(parts) < 2 or any(not part for part in parts):
        raise ValueError(f"Invalid path: '{path}'")
    return "/".join(parts[:-1]), parts[-1]


class LiveStore:
    def __init__(self, connect: Callable[[], sqlite3.Connection] = ensure):
        self._connect = connect
        self._subscriptions: list[_Subscription] = []
        self._closed = False
        self._data_version: int | None = None

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._closed:
            raise TransportError("Store is closed")
        try:
            return self._connect().execute(sql, params)
        except sqlite3.Error as e:
            raise TransportError(str(e)) from e

    def _read(self, path: str) -> dict[str, Any] | None:
        row = self._execute("SELECT value FROM nodes WHERE path = ?", (path.strip("/"),)).fetchone()
        return json.loads(row["value"]) if row else None

    def _write(self, path: str, value: dict[str, Any]) -> str:
        collection, key = split_path(path)
        self._execute(
            """
            INSERT INTO nodes (path, collection, key, value, updated_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT (path) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (path.strip("/"), collection, key, json.dumps(value)),
        )
        return collection

    def _fetch(self, query: Query) -> Snapshot:
        sql = "SELECT key, value FROM nodes WHERE collection = ?"
        params: list[Any] = [query.collection]
        if query.field is not None:
            sql += f" AND json_extract(value, '$.{query.field}') = ?"
            params.append(query.equal_to)
        if query.limit_to_last is not None:
            sql += " ORDER BY key DESC LIMIT ?"
            params.append(query.limit_to_last)
            rows = list(reversed(self._execute(sql, tuple(params)).fetchall()))
        else:
            sql += " ORDER BY key"
            rows = self._execute(sql, tuple(params)).fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}

    def _deliver(self, sub: _Subscription) -> None:
        try:
            snapshot = self._fetch(sub.query)
        except TransportError as e:
            logger.error(f"Snapshot for {sub.query.collection} failed: {e}")
            return
        if not sub.active or snapshot == sub.last:
            return
        sub.last = snapshot
        try:
            sub.callback(snapshot)
        except Exception:
            logger.error(f"Subscriber for {sub.query.collection} raised", exc_info=True)

    def _notify(self, collection: str) -> None:
        for sub in list(self._subscriptions):
            if sub.active and sub.query.collection == collection:
                self._deliver(sub)

    def push_key(self) -> str:
        return uuid7()

    async def get(self, path: str) -> dict[str, Any] | None:
        return self._read(path)

    async def set(self, path: str, value: dict[str, Any]) -> None:
        collection = self._write(path, value)
        self._notify(collection)

    async def create(self, path: str, value: dict[str, Any]) -> bool:
        """Write only if nothing exists at path. Returns True if written."""
        collection, key = split_path(path)
        cursor = self._execute(
            "INSERT OR IGNORE INTO nodes (path, collection, key, value) VALUES (?, ?, ?, ?)",
            (path.strip("/"), collection, key, json.dumps(value)),
        )
        if cursor.rowcount == 0:
            return False
        self._notify(collection)
        return True

    async def update(self, path: str, fields: dict[str, Any]) -> bool:
        """Shallow-merge fields into an existing value. Returns False if path is absent."""
        current = self._read(path)
        if current is None:
            return False
        current.update(fields)
        collection = self._write(path, current)
        self._notify(collection)
        return True

    async def remove(self, path: str) -> bool:
        collection, _ = split_path(path)
        cursor = self._execute("DELETE FROM nodes WHERE path = ?", (path.strip("/"),))
        if cursor.rowcount == 0:
            return False
        self._notify(collection)
        return True

    async def remove_where(self, query: Query) -> int:
        keys = list(self._fetch(Query(query.collection, query.field, query.equal_to)))
        for key in keys:
            self._execute("DELETE FROM nodes WHERE path = ?", (f"{query.collection}/{key}",))
        if keys:
            self._notify(query.collection)
        return len(keys)

    async def fetch(self, query: Query) -> Snapshot:
        return self._fetch(query)

    def subscribe(self, query: Query, callback: Callback) -> Unsubscribe:
        """Register callback; it runs now with the current set and after every change.

        The returned handle is idempotent and safe to call after close().
        """
        snapshot = self._fetch(query)
        if self._data_version is None:
            self._data_version = self._version()
        sub = _Subscription(query, callback, last=snapshot)
        self._subscriptions.append(sub)

        def unsubscribe() -> None:
            if not sub.active:
                return
            sub.active = False
            with contextlib.suppress(ValueError):
                self._subscriptions.remove(sub)

        try:
            callback(snapshot)
        except Exception:
            logger.error(f"Subscriber for {query.collection} raised", exc_info=True)
        return unsubscribe

    def _version(self) -> int:
        return self._execute("PRAGMA data_version").fetchone()[0]

    def poll(self) -> bool:
        """Replay every subscription if another connection committed since the last look.

        Mutations made through this store are delivered immediately; this picks up
        writes from other processes sharing the database file.
        """
        version = self._version()
        if self._data_version is None or version == self._data_version:
            self._data_version = version
            return False
        self._data_version = version
        for collection in {sub.query.collection for sub in self._subscriptions if sub.active}:
            self._notify(collection)
        return True

    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()
        self._closed = True


_default: LiveStore | None = None


def default() -> LiveStore:
    """Process-wide store bound to store.ensure()."""
    global _default
    if _default is None or _default._closed:
        _default = LiveStore()
    return _default


def _reset_default() -> None:
    global _default
    if _default is not None:
        _default.close()
    _default = None
