from huddle.lib import clock
from huddle.models import Message, Notification


def format_message(message: Message) -> str:
    line = f"[{clock.local_time(message.timestamp)}] {message.sender_name}: {message.content}"
    if message.is_edited:
        line += " (edited)"
    if message.reactions:
        counts: dict[str, int] = {}
        for reaction in message.reactions:
            counts[reaction.emoji] = counts.get(reaction.emoji, 0) + 1
        line += "  " + " ".join(f"{emoji}{n}" for emoji, n in counts.items())
    return line


def format_notification(notification: Notification) -> str:
    marker = " " if notification.is_read else "*"
    when = clock.local_time(notification.created_at, "%Y-%m-%d %H:%M")
    context = f" [{notification.context_title}]" if notification.context_title else ""
    return f"{marker} {notification.notification_id}  {when}{context} {notification.title}"
