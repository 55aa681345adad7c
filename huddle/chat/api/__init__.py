"""Chat operations over the live store.

Teams: directory of teams and rosters.
Messages: append (members only), ordered live log, edit, delete, reactions.
Reads: per-user read positions and unread counts.
Mentions: resolve @names against the roster, notify mentioned members.
Notifications: per-user records and the live feed.
"""

from .mentions import MentionDispatcher, parse_mentions, resolve_mentions
from .messages import MessageLog, order_messages
from .notifications import NotificationFeed, NotificationStore
from .reads import ReadTracker, compute_unread
from .teams import StoreDirectory, TeamDirectory

__all__ = [
    "MentionDispatcher",
    "MessageLog",
    "NotificationFeed",
    "NotificationStore",
    "ReadTracker",
    "StoreDirectory",
    "TeamDirectory",
    "compute_unread",
    "order_messages",
    "parse_mentions",
    "resolve_mentions",
]
