"""Read positions per (user, team) and the unread counts derived from them.

A read position is the timestamp of the user's last "mark as read". Concurrent
writers (two open tabs) resolve last-write-wins in write order.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable

from huddle.lib import clock
from huddle.lib.store import LiveStore, Query, Snapshot
from huddle.lib.store.live import Unsubscribe
from huddle.models import Message, ReadPosition, from_value, to_value

from .messages import MESSAGES, order_messages

log = logging.getLogger(__name__)

READ_POSITIONS = "read_positions"


def compute_unread(user_id: str, messages: Iterable[Message], read_at: str | None) -> int:
    """Messages from others newer than read_at. None means the team was never read."""
    return sum(
        1
        for m in messages
        if m.sender_id != user_id and (read_at is None or m.timestamp > read_at)
    )


def _position_path(user_id: str, team_id: str) -> str:
    return f"{READ_POSITIONS}/{user_id}/{team_id}"


class ReadTracker:
    def __init__(self, live: LiveStore):
        self.live = live
        self._pending: dict[tuple[str, str], asyncio.Future] = {}

    async def mark_read(self, user_id: str, team_id: str) -> str:
        """Advance the read position to now. Same-key calls in one loop pass share a write."""
        key = (user_id, team_id)
        task = self._pending.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._write(user_id, team_id))
            self._pending[key] = task

            def _done(finished: asyncio.Future) -> None:
                if self._pending.get(key) is finished:
                    del self._pending[key]

            task.add_done_callback(_done)
        return await asyncio.shield(task)

    async def _write(self, user_id: str, team_id: str) -> str:
        position = ReadPosition(user_id=user_id, team_id=team_id, timestamp=clock.now())
        await self.live.set(_position_path(user_id, team_id), to_value(position))
        log.debug(f"Read position {user_id}/{team_id} -> {position.timestamp}")
        return position.timestamp

    async def get_position(self, user_id: str, team_id: str) -> ReadPosition | None:
        value = await self.live.get(_position_path(user_id, team_id))
        return from_value(value, ReadPosition) if value else None

    async def unread_count(self, user_id: str, team_id: str) -> int:
        snapshot = await self.live.fetch(Query(MESSAGES, "team_id", team_id))
        position = await self.get_position(user_id, team_id)
        return compute_unread(
            user_id, order_messages(snapshot), position.timestamp if position else None
        )

    def subscribe_unread(
        self,
        user_id: str,
        team_ids: Iterable[str],
        on_change: Callable[[dict[str, int]], None],
    ) -> Unsubscribe:
        """Live {team_id: unread} map, delivered at most once per event loop iteration.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        team_ids = list(dict.fromkeys(team_ids))
        messages: dict[str, list[Message]] = {team_id: [] for team_id in team_ids}
        positions: dict[str, str] = {}
        handle: asyncio.Handle | None = None
        closed = False

        def flush() -> None:
            nonlocal handle
            handle = None
            if closed:
                return
            on_change(
                {
                    team_id: compute_unread(user_id, messages[team_id], positions.get(team_id))
                    for team_id in team_ids
                }
            )

        def schedule() -> None:
            nonlocal handle
            if handle is None and not closed:
                handle = loop.call_soon(flush)

        def on_messages(team_id: str) -> Callable[[Snapshot], None]:
            def deliver(snapshot: Snapshot) -> None:
                messages[team_id] = order_messages(snapshot)
                schedule()

            return deliver

        def on_positions(snapshot: Snapshot) -> None:
            positions.clear()
            for team_id, value in snapshot.items():
                positions[team_id] = value["timestamp"]
            schedule()

        unsubscribers = [
            self.live.subscribe(Query(MESSAGES, "team_id", team_id), on_messages(team_id))
            for team_id in team_ids
        ]
        unsubscribers.append(self.live.subscribe(Query(f"{READ_POSITIONS}/{user_id}"), on_positions))

        def unsubscribe() -> None:
            nonlocal closed, handle
            if closed:
                return
            closed = True
            if handle is not None:
                handle.cancel()
                handle = None
            for stop in unsubscribers:
                stop()

        return unsubscribe
