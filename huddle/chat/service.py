"""Wires the chat components around one live store and the shared cue engine."""

import logging
from dataclasses import dataclass

from huddle.errors import AuthorizationError, MessageNotFoundError, NotAMemberError
from huddle.lib.store import LiveStore
from huddle.lib.store import live as live_store
from huddle.models import Message, TeamMember

from .api.mentions import MentionDispatcher
from .api.messages import MessageLog
from .api.notifications import NotificationFeed, NotificationStore
from .api.reads import ReadTracker
from .api.teams import StoreDirectory
from .cues import CueEngine, CueKind, get_engine

log = logging.getLogger(__name__)


@dataclass
class Chat:
    live: LiveStore
    directory: StoreDirectory
    messages: MessageLog
    reads: ReadTracker
    notifications: NotificationStore
    mentions: MentionDispatcher
    feed: NotificationFeed
    cues: CueEngine

    async def send(
        self, team_id: str, author_id: str, content: str, reply_to: str | None = None
    ) -> str:
        """Append a message and play the sent cue. Mentions are dispatched in the background."""
        message_id = await self.messages.append(team_id, author_id, content, reply_to=reply_to)
        self.cues.request_cue(CueKind.SENT)
        return message_id

    async def require_member(self, team_id: str, user_id: str) -> TeamMember:
        for member in await self.directory.get_active_members(team_id):
            if member.user_id == user_id:
                return member
        raise NotAMemberError(team_id, user_id)

    async def own_message(self, message_id: str, user_id: str) -> Message:
        """The message, if user_id sent it. Edits and deletes go through this."""
        message = await self.messages.get(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message '{message_id}' not found")
        if message.sender_id != user_id:
            raise AuthorizationError("Only the sender can change a message")
        return message

    async def delete_team(self, team_id: str) -> bool:
        removed = await self.directory.delete_team(team_id)
        cleared = await self.messages.clear(team_id)
        log.debug(f"Cleared {cleared} message(s) of team {team_id}")
        return removed

    async def close(self) -> None:
        """Wait for outstanding mention dispatch."""
        await self.messages.drain()


def open_chat(live: LiveStore | None = None, engine: CueEngine | None = None) -> Chat:
    live = live or live_store.default()
    cues = engine or get_engine()
    directory = StoreDirectory(live)
    notifications = NotificationStore(live)
    messages = MessageLog(live, directory)
    mentions = MentionDispatcher(directory, notifications)
    messages.after_append(mentions.dispatch)
    return Chat(
        live=live,
        directory=directory,
        messages=messages,
        reads=ReadTracker(live),
        notifications=notifications,
        mentions=mentions,
        feed=NotificationFeed(notifications, cues),
        cues=cues,
    )
