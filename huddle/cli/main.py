"""huddle CLI: teams, messages, unread counts, notifications and sound cues."""

import asyncio

import typer

from huddle import config
from huddle.chat import Chat
from huddle.errors import MessageNotFoundError
from huddle.lib import logs
from huddle.models import Message, Notification, NotificationType

from . import notifications, sound, teams
from .errors import error_feedback
from .format import format_message, format_notification
from .output import echo_json, echo_text, init_context, is_json_mode, require_identity
from .runner import resolve_team, run

app = typer.Typer(no_args_is_help=True, help="Team chat with mentions, unread counts and cues.")


@app.callback()
def main_callback(
    ctx: typer.Context,
    identity: str = typer.Option(None, "--as", envvar="HUDDLE_USER", help="Acting user id"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output in JSON format."),
    quiet_output: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
):
    init_context(ctx, json_output, quiet_output, identity)
    logs.setup("DEBUG" if verbose else config.get("log_level", "WARNING"))


@app.command()
@error_feedback
def send(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
    content: str = typer.Argument(..., help="Message content; @Name mentions a member"),
    reply_to: str = typer.Option(None, "--reply-to", help="Message id this replies to"),
):
    """Send a message to a team."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> str:
        found = await resolve_team(chat, team)
        return await chat.send(found.team_id, identity, content, reply_to=reply_to)

    message_id = run(action)
    echo_json({"status": "sent", "team": team, "message_id": message_id}, ctx) or echo_text(
        f"Sent to {team}", ctx
    )


@app.command()
@error_feedback
def recv(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
    limit: int = typer.Option(None, "--limit", "-n", help="Most recent N messages"),
):
    """Show a team's recent messages and mark them read."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> list[Message]:
        found = await resolve_team(chat, team)
        await chat.require_member(found.team_id, identity)
        messages = await chat.messages.get_messages(found.team_id, limit)
        await chat.reads.mark_read(identity, found.team_id)
        return messages

    messages = run(action)
    if echo_json(messages, ctx):
        return
    if not messages:
        echo_text("No messages", ctx)
        return
    for message in messages:
        echo_text(format_message(message), ctx)


@app.command()
@error_feedback
def edit(
    ctx: typer.Context,
    message_id: str = typer.Argument(..., help="Message id"),
    content: str = typer.Argument(..., help="New content"),
):
    """Edit one of your messages."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> bool:
        await chat.own_message(message_id, identity)
        return await chat.messages.edit(message_id, content)

    run(action)
    echo_json({"status": "edited", "message_id": message_id}, ctx) or echo_text("Edited", ctx)


@app.command()
@error_feedback
def delete(
    ctx: typer.Context,
    message_id: str = typer.Argument(..., help="Message id"),
):
    """Delete one of your messages."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> bool:
        await chat.own_message(message_id, identity)
        return await chat.messages.delete(message_id)

    run(action)
    echo_json({"status": "deleted", "message_id": message_id}, ctx) or echo_text("Deleted", ctx)


@app.command()
@error_feedback
def react(
    ctx: typer.Context,
    message_id: str = typer.Argument(..., help="Message id"),
    emoji: str = typer.Argument(..., help="Reaction"),
):
    """React to a message."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> bool:
        message = await chat.messages.get(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message '{message_id}' not found")
        member = await chat.require_member(message.team_id, identity)
        return await chat.messages.add_reaction(message_id, emoji, identity, member.user_name)

    run(action)
    echo_json({"status": "reacted", "emoji": emoji}, ctx) or echo_text(f"Reacted {emoji}", ctx)


@app.command()
@error_feedback
def unread(ctx: typer.Context):
    """Unread message counts for each of your teams."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> dict[str, int]:
        counts = {}
        for team in await chat.directory.list_user_teams(identity):
            counts[team.name] = await chat.reads.unread_count(identity, team.team_id)
        return counts

    counts = run(action)
    if echo_json(counts, ctx):
        return
    if not counts:
        echo_text("Not a member of any team", ctx)
        return
    for name, count in sorted(counts.items()):
        echo_text(f"  {name}: {count}", ctx)


@app.command()
@error_feedback
def watch(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
    interval: float = typer.Option(None, "--interval", help="Seconds between checks"),
):
    """Follow a team live, with sound cues, until interrupted."""
    identity = require_identity(ctx)
    interval = interval or config.get("poll_interval", 0.5)
    as_json = is_json_mode(ctx)

    async def action(chat: Chat) -> None:
        found = await resolve_team(chat, team)
        await chat.require_member(found.team_id, identity)
        chat.cues.unlock()
        chat.cues.watch_prefs()

        shown: set[str] = set()
        fresh = False

        def on_messages(messages: list[Message]) -> None:
            nonlocal fresh
            for message in messages:
                if message.message_id in shown:
                    continue
                shown.add(message.message_id)
                fresh = True
                if as_json:
                    echo_json(message, ctx)
                else:
                    echo_text(format_message(message), ctx)

        known: set[str] | None = None

        def on_notifications(items: list[Notification]) -> None:
            nonlocal known
            if known is not None and not as_json:
                for item in items:
                    if item.notification_id not in known and item.type == NotificationType.MENTION:
                        echo_text(format_notification(item), ctx)
            known = {item.notification_id for item in items}

        stops = [
            chat.messages.subscribe_with_cues(found.team_id, identity, on_messages, chat.cues),
            chat.feed.subscribe(identity, on_notifications),
        ]
        try:
            while True:
                if fresh:
                    fresh = False
                    await chat.reads.mark_read(identity, found.team_id)
                await asyncio.sleep(interval)
                chat.live.poll()
        finally:
            for stop in stops:
                stop()
            chat.cues.close()

    try:
        run(action)
    except KeyboardInterrupt:
        echo_text("", ctx)


app.add_typer(teams.app, name="teams")
app.add_typer(notifications.app, name="notifications")
app.add_typer(sound.app, name="sound")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
