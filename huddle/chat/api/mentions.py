"""@mentions: resolve names against a team roster and notify the addressed members."""

import asyncio
import logging
import re

from huddle.errors import NotificationCreateFailure
from huddle.models import Message, NotificationType, TeamMember

from .notifications import NotificationStore
from .teams import TeamDirectory

log = logging.getLogger(__name__)

# '@' not glued to a preceding word character, so e-mail addresses are not mentions.
_MENTION = re.compile(r"(?<![\w@])@([^\s@]+)")
_TRAILING = ".,;:!?)]}>\"'"


def normalize(name: str) -> str:
    return " ".join(name.casefold().split())


def _contains_words(name: str, words: str) -> bool:
    return f" {words} " in f" {name} "


def parse_mentions(text: str) -> list[str]:
    """Syntactic @tokens (first word only), deduplicated in order of appearance."""
    tokens: list[str] = []
    for match in _MENTION.finditer(text):
        token = match.group(1).rstrip(_TRAILING)
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def _accumulate(first: str, following: list[str], names: list[str]) -> str:
    """Greedily extend the mention while it is still a prefix or substring of some roster name."""
    words = [first.rstrip(_TRAILING)]
    ended = words[0] != first
    for word in following:
        if ended or word.startswith("@"):
            break
        stripped = word.rstrip(_TRAILING)
        if not stripped:
            break
        candidate = normalize(" ".join([*words, stripped]))
        if not any(candidate in name for name in names):
            break
        words.append(stripped)
        ended = stripped != word
    return normalize(" ".join(words))


def _match(mention: str, roster: list[TeamMember], names: list[str]) -> TeamMember | None:
    # Tiers: exact name, name starts with the mention as whole words, the mention
    # appears as whole words inside the name, then plain character prefix and substring.
    # Within a tier the first member in roster order wins.
    for name, member in zip(names, roster):
        if name == mention:
            return member
    for name, member in zip(names, roster):
        if name.startswith(mention + " "):
            return member
    for name, member in zip(names, roster):
        if _contains_words(name, mention):
            return member
    for name, member in zip(names, roster):
        if name.startswith(mention):
            return member
    for name, member in zip(names, roster):
        if mention in name:
            return member
    return None


def resolve_mentions(
    text: str, roster: list[TeamMember], sender_id: str | None = None
) -> list[TeamMember]:
    """Members addressed by @mentions in text, deduplicated, in order of first mention.

    Inactive members and the sender are never resolved. Tokens matching nobody are dropped.
    """
    candidates = [m for m in roster if m.is_active and m.user_id != sender_id]
    names = [normalize(m.user_name) for m in candidates]
    resolved: list[TeamMember] = []

    for match in _MENTION.finditer(text):
        following = text[match.end() :].split()
        mention = _accumulate(match.group(1), following, names)
        if not mention:
            continue
        member = _match(mention, candidates, names)
        if member is None:
            log.debug(f"Unresolved mention @{mention}")
            continue
        if all(m.user_id != member.user_id for m in resolved):
            resolved.append(member)

    return resolved


def action_url(team_id: str) -> str:
    return f"/chat?team={team_id}"


class MentionDispatcher:
    """Creates one mention notification per resolved recipient of a message."""

    def __init__(self, directory: TeamDirectory, notifications: NotificationStore):
        self.directory = directory
        self.notifications = notifications

    async def dispatch(self, message: Message) -> list[str]:
        """Notify mentioned members. Never raises; failures are logged per recipient."""
        if "@" not in message.content:
            return []

        try:
            roster = await self.directory.get_active_members(message.team_id)
            team = await self.directory.get_team(message.team_id)
        except Exception as e:
            log.error(f"Roster lookup for team {message.team_id} failed: {e}")
            return []

        recipients = resolve_mentions(message.content, roster, sender_id=message.sender_id)
        if not recipients:
            return []

        team_name = team.name if team else message.team_id
        results = await asyncio.gather(
            *(self._notify(recipient, message, team_name) for recipient in recipients),
            return_exceptions=True,
        )

        created = []
        for recipient, result in zip(recipients, results):
            if isinstance(result, Exception):
                log.error(str(NotificationCreateFailure(recipient.user_id, result)))
            elif result:
                created.append(result)
        log.info(f"Message {message.message_id}: {len(created)} mention notification(s)")
        return created

    async def _notify(self, recipient: TeamMember, message: Message, team_name: str) -> str | None:
        return await self.notifications.create(
            recipient_id=recipient.user_id,
            title=f"{message.sender_name} mentioned you",
            message=f"{message.sender_name} mentioned you in a message",
            type=NotificationType.MENTION,
            action_url=action_url(message.team_id),
            context_title=team_name,
            sender_id=message.sender_id,
            context_id=message.message_id,
            notification_id=f"mention-{message.message_id}-{recipient.user_id}",
        )
