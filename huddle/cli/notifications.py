"""Notification subcommands: list, read, read-all, clear."""

import typer

from huddle.chat import Chat

from .errors import error_feedback
from .format import format_notification
from .output import echo_json, echo_text, require_identity
from .runner import run

app = typer.Typer(help="Your notifications")


@app.command("list")
@error_feedback
def list_cmd(
    ctx: typer.Context,
    unread: bool = typer.Option(False, "--unread", "-u", help="Only unread"),
):
    """List notifications, newest first. Unread are starred."""
    identity = require_identity(ctx)

    async def action(chat: Chat):
        return await chat.notifications.list_for(identity, unread_only=unread)

    notifications = run(action)
    if echo_json(notifications, ctx):
        return
    if not notifications:
        echo_text("No notifications", ctx)
        return
    for notification in notifications:
        echo_text(format_notification(notification), ctx)


@app.command("read")
@error_feedback
def read_cmd(
    ctx: typer.Context,
    notification_id: str = typer.Argument(..., help="Notification id"),
):
    """Mark one notification read."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> bool:
        return await chat.notifications.mark_read(notification_id, identity)

    marked = run(action)
    echo_json({"marked": marked}, ctx) or echo_text(
        "Marked read" if marked else "Nothing to mark", ctx
    )


@app.command("read-all")
@error_feedback
def read_all_cmd(ctx: typer.Context):
    """Mark every notification read."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> int:
        return await chat.notifications.mark_all_read(identity)

    marked = run(action)
    echo_json({"marked": marked}, ctx) or echo_text(f"Marked {marked} read", ctx)


@app.command("clear")
@error_feedback
def clear_cmd(ctx: typer.Context):
    """Delete all of your notifications."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> int:
        return await chat.notifications.clear_all(identity)

    removed = run(action)
    echo_json({"removed": removed}, ctx) or echo_text(f"Removed {removed}", ctx)
