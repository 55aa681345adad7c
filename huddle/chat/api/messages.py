"""Message log: append, live subscription, edit, delete, reactions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from huddle import config
from huddle.chat.cues import CueKind
from huddle.errors import NotAMemberError
from huddle.lib import clock
from huddle.lib.store import LiveStore, Query, Snapshot
from huddle.lib.store.live import Unsubscribe
from huddle.models import Message, Reaction, from_value, to_value

from .teams import TeamDirectory

log = logging.getLogger(__name__)

MESSAGES = "messages"

AfterAppend = Callable[[Message], Awaitable[Any]]


def _to_message(value: dict[str, Any]) -> Message:
    message = from_value(value, Message)
    message.reactions = [from_value(r, Reaction) for r in value.get("reactions") or []]
    return message


def order_messages(snapshot: Snapshot) -> list[Message]:
    """Ascending by timestamp; message_id breaks ties."""
    return sorted(
        (_to_message(value) for value in snapshot.values()),
        key=lambda m: (m.timestamp, m.message_id),
    )


class MessageLog:
    def __init__(
        self, live: LiveStore, directory: TeamDirectory, message_limit: int | None = None
    ):
        self.live = live
        self.directory = directory
        self.message_limit = message_limit or config.get("message_limit", 100)
        self._hooks: list[AfterAppend] = []
        self._background: set[asyncio.Future] = set()

    def after_append(self, hook: AfterAppend) -> None:
        """Run hook(message) in the background after every successful append."""
        self._hooks.append(hook)

    async def append(
        self, team_id: str, author_id: str, content: str, reply_to: str | None = None
    ) -> str:
        if not content or not content.strip():
            raise ValueError("Message content is required")

        roster = await self.directory.get_active_members(team_id)
        author = next((m for m in roster if m.user_id == author_id and m.is_active), None)
        if author is None:
            log.warning(f"Rejected message from {author_id}: not an active member of {team_id}")
            raise NotAMemberError(team_id, author_id)

        message = Message(
            message_id=self.live.push_key(),
            team_id=team_id,
            sender_id=author_id,
            sender_name=author.user_name,
            sender_email=author.user_email,
            content=content,
            timestamp=clock.now(),
            reply_to=reply_to,
        )
        await self.live.set(f"{MESSAGES}/{message.message_id}", to_value(message))
        self._run_hooks(message)
        return message.message_id

    def _run_hooks(self, message: Message) -> None:
        for hook in self._hooks:
            try:
                task = asyncio.ensure_future(hook(message))
            except Exception as e:
                log.error(f"After-append hook for {message.message_id} failed: {e}")
                continue
            self._background.add(task)
            task.add_done_callback(self._hook_done)

    def _hook_done(self, task: asyncio.Future) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(f"After-append hook failed: {exc}", exc_info=exc)

    async def drain(self) -> None:
        """Wait for background after-append work to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def get(self, message_id: str) -> Message | None:
        value = await self.live.get(f"{MESSAGES}/{message_id}")
        return _to_message(value) if value else None

    async def get_messages(self, team_id: str, limit: int | None = None) -> list[Message]:
        limit = limit or config.get("history_limit", 50)
        snapshot = await self.live.fetch(Query(MESSAGES, "team_id", team_id))
        return order_messages(snapshot)[-limit:]

    def subscribe(
        self,
        team_id: str,
        on_update: Callable[[list[Message]], None],
        limit: int | None = None,
    ) -> Unsubscribe:
        """Replay the team's ordered log now and after every change to it."""
        limit = limit or self.message_limit

        def deliver(snapshot: Snapshot) -> None:
            on_update(order_messages(snapshot)[-limit:])

        return self.live.subscribe(Query(MESSAGES, "team_id", team_id), deliver)

    def subscribe_with_cues(
        self,
        team_id: str,
        user_id: str,
        on_update: Callable[[list[Message]], None],
        cues,
        limit: int | None = None,
    ) -> Unsubscribe:
        """Like subscribe(), plus a `received` cue for new messages from others."""
        seen: set[str] | None = None

        def deliver(messages: list[Message]) -> None:
            nonlocal seen
            if seen is not None and any(
                m.message_id not in seen and m.sender_id != user_id for m in messages
            ):
                cues.request_cue(CueKind.RECEIVED)
            seen = {m.message_id for m in messages}
            on_update(messages)

        return self.subscribe(team_id, deliver, limit)

    async def edit(self, message_id: str, new_content: str) -> bool:
        """Replace content. Owner checks belong to the caller."""
        if not new_content or not new_content.strip():
            raise ValueError("Message content is required")
        return await self.live.update(
            f"{MESSAGES}/{message_id}",
            {"content": new_content, "is_edited": True, "edited_at": clock.now()},
        )

    async def delete(self, message_id: str) -> bool:
        """Hard delete: the entry is removed from the log, not tombstoned."""
        return await self.live.remove(f"{MESSAGES}/{message_id}")

    async def add_reaction(self, message_id: str, emoji: str, user_id: str, user_name: str) -> bool:
        """Record user's reaction; an earlier identical (user, emoji) reaction is replaced."""
        path = f"{MESSAGES}/{message_id}"
        value = await self.live.get(path)
        if value is None:
            return False
        reactions = [
            r
            for r in value.get("reactions") or []
            if not (r["user_id"] == user_id and r["emoji"] == emoji)
        ]
        reactions.append(
            to_value(Reaction(emoji=emoji, user_id=user_id, user_name=user_name, timestamp=clock.now()))
        )
        return await self.live.update(path, {"reactions": reactions})

    async def clear(self, team_id: str) -> int:
        """Remove every message of a team (team deleted)."""
        return await self.live.remove_where(Query(MESSAGES, "team_id", team_id))
