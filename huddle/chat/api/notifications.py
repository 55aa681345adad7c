"""Per-user notification records and the live feed that turns new mentions into cues."""

import logging
from collections.abc import Callable

from huddle.chat.cues import CueKind
from huddle.errors import AuthorizationError
from huddle.lib import clock
from huddle.lib.store import LiveStore, Query, Snapshot
from huddle.lib.store.live import Unsubscribe
from huddle.models import Notification, NotificationType, from_value, to_value

log = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"


def order_notifications(snapshot: Snapshot) -> list[Notification]:
    """Newest first."""
    return sorted(
        (from_value(value, Notification) for value in snapshot.values()),
        key=lambda n: (n.created_at, n.notification_id),
        reverse=True,
    )


def _query(user_id: str) -> Query:
    return Query(NOTIFICATIONS, "recipient_id", user_id)


class NotificationStore:
    def __init__(self, live: LiveStore):
        self.live = live

    async def create(
        self,
        recipient_id: str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        action_url: str | None = None,
        context_title: str | None = None,
        sender_id: str | None = None,
        context_id: str | None = None,
        notification_id: str | None = None,
    ) -> str | None:
        """Create a notification. Returns its id, or None if that id already exists."""
        kind = NotificationType(type)
        notification = Notification(
            notification_id=notification_id or self.live.push_key(),
            recipient_id=recipient_id,
            title=title,
            message=message,
            type=kind.value,
            created_at=clock.now(),
            action_url=action_url,
            context_title=context_title,
            sender_id=sender_id,
            context_id=context_id,
        )
        created = await self.live.create(
            f"{NOTIFICATIONS}/{notification.notification_id}", to_value(notification)
        )
        if not created:
            log.debug(f"Notification {notification.notification_id} already exists")
            return None
        return notification.notification_id

    async def get(self, notification_id: str) -> Notification | None:
        value = await self.live.get(f"{NOTIFICATIONS}/{notification_id}")
        return from_value(value, Notification) if value else None

    async def list_for(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        notifications = order_notifications(await self.live.fetch(_query(user_id)))
        if unread_only:
            return [n for n in notifications if not n.is_read]
        return notifications

    async def unread_count(self, user_id: str) -> int:
        return len(await self.list_for(user_id, unread_only=True))

    async def _owned(self, notification_id: str, user_id: str) -> Notification | None:
        notification = await self.get(notification_id)
        if notification is not None and notification.recipient_id != user_id:
            raise AuthorizationError(
                f"Notification '{notification_id}' does not belong to '{user_id}'"
            )
        return notification

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark one notification read. False when missing or already read."""
        notification = await self._owned(notification_id, user_id)
        if notification is None or notification.is_read:
            return False
        return await self.live.update(f"{NOTIFICATIONS}/{notification_id}", {"is_read": True})

    async def mark_all_read(self, user_id: str) -> int:
        marked = 0
        for notification in await self.list_for(user_id, unread_only=True):
            if await self.live.update(
                f"{NOTIFICATIONS}/{notification.notification_id}", {"is_read": True}
            ):
                marked += 1
        return marked

    async def remove(self, notification_id: str, user_id: str) -> bool:
        if await self._owned(notification_id, user_id) is None:
            return False
        return await self.live.remove(f"{NOTIFICATIONS}/{notification_id}")

    async def clear_all(self, user_id: str) -> int:
        return await self.live.remove_where(_query(user_id))


class NotificationFeed:
    """Live notifications for a user; newly arrived mentions request a mention cue."""

    def __init__(self, store: NotificationStore, cues):
        self.store = store
        self.cues = cues

    def subscribe(
        self, user_id: str, on_update: Callable[[list[Notification]], None]
    ) -> Unsubscribe:
        previous: set[str] | None = None

        def deliver(snapshot: Snapshot) -> None:
            nonlocal previous
            notifications = order_notifications(snapshot)
            current = {n.notification_id for n in notifications}
            if previous is not None:
                fresh = [
                    n
                    for n in notifications
                    if n.notification_id not in previous
                    and n.type == NotificationType.MENTION.value
                    and not n.is_read
                ]
                if fresh:
                    log.debug(f"{len(fresh)} new mention(s) for {user_id}")
                    self.cues.request_cue(CueKind.MENTION)
            previous = current
            on_update(notifications)

        return self.store.live.subscribe(_query(user_id), deliver)
