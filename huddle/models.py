"""Shared data models and types."""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass
class Team:
    team_id: str
    name: str
    is_active: bool = True
    created_at: str | None = None


@dataclass
class TeamMember:
    """Roster entry. A point-in-time snapshot from the team directory."""

    team_id: str
    user_id: str
    user_name: str
    user_email: str
    is_active: bool = True
    joined_at: str | None = None


@dataclass
class Reaction:
    emoji: str
    user_id: str
    user_name: str
    timestamp: str


@dataclass
class Message:
    """A team message. `timestamp` is assigned once at creation."""

    message_id: str
    team_id: str
    sender_id: str
    sender_name: str
    sender_email: str
    content: str
    timestamp: str
    is_edited: bool = False
    edited_at: str | None = None
    reply_to: str | None = None
    reactions: list[Reaction] = field(default_factory=list)


@dataclass
class ReadPosition:
    user_id: str
    team_id: str
    timestamp: str


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    MENTION = "mention"


@dataclass
class Notification:
    notification_id: str
    recipient_id: str
    title: str
    message: str
    type: str
    created_at: str
    is_read: bool = False
    action_url: str | None = None
    context_title: str | None = None
    sender_id: str | None = None
    context_id: str | None = None


def to_value(obj: Any) -> dict[str, Any]:
    """Dataclass to a store value, dropping unset optionals."""
    return {k: v for k, v in asdict(obj).items() if v is not None}


def from_value(value: dict[str, Any], cls: type[T]) -> T:
    """Store value to a dataclass. Keys the dataclass does not declare are ignored."""
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in value.items() if k in names})
