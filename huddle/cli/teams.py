"""Team subcommands: create, join, leave, members, list."""

import typer

from huddle.chat import Chat

from .errors import error_feedback
from .output import echo_json, echo_text, get_identity, require_identity
from .runner import resolve_team, run

app = typer.Typer(help="Manage teams and membership")


@app.command("create")
@error_feedback
def create_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Team name"),
    user_name: str = typer.Option(None, "--name", help="Display name when joining as creator"),
):
    """Create a team. With --as, the creator joins it."""
    identity = get_identity(ctx)

    async def action(chat: Chat):
        team = await chat.directory.create_team(name)
        if identity:
            await chat.directory.add_member(team.team_id, identity, user_name or identity)
        return team

    team = run(action)
    echo_json(team, ctx) or echo_text(f"Created team {team.name} ({team.team_id})", ctx)


@app.command("join")
@error_feedback
def join_cmd(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
    user_name: str = typer.Option(None, "--name", help="Display name used for @mentions"),
    email: str = typer.Option("", "--email", help="Contact email"),
):
    """Join a team (or rejoin after leaving)."""
    identity = require_identity(ctx)

    async def action(chat: Chat):
        found = await resolve_team(chat, team)
        return await chat.directory.add_member(found.team_id, identity, user_name or identity, email)

    member = run(action)
    echo_json(member, ctx) or echo_text(f"{member.user_name} joined {team}", ctx)


@app.command("leave")
@error_feedback
def leave_cmd(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
):
    """Leave a team. Past messages stay."""
    identity = require_identity(ctx)

    async def action(chat: Chat) -> bool:
        found = await resolve_team(chat, team)
        return await chat.directory.deactivate_member(found.team_id, identity)

    left = run(action)
    if not left:
        raise ValueError(f"'{identity}' is not a member of {team}")
    echo_json({"status": "left", "team": team}, ctx) or echo_text(f"Left {team}", ctx)


@app.command("members")
@error_feedback
def members_cmd(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
    all: bool = typer.Option(False, "--all", help="Include members who left"),
):
    """List a team's roster."""

    async def action(chat: Chat):
        found = await resolve_team(chat, team)
        if all:
            return await chat.directory.get_members(found.team_id)
        return await chat.directory.get_active_members(found.team_id)

    members = run(action)
    if echo_json(members, ctx):
        return
    if not members:
        echo_text("No members", ctx)
        return
    for member in members:
        status = "" if member.is_active else " (left)"
        email = f" <{member.user_email}>" if member.user_email else ""
        echo_text(f"  {member.user_id}: {member.user_name}{email}{status}", ctx)


@app.command("list")
@error_feedback
def list_cmd(ctx: typer.Context):
    """List teams. With --as, only the teams that user belongs to."""
    identity = get_identity(ctx)

    async def action(chat: Chat):
        if identity:
            return await chat.directory.list_user_teams(identity)
        return await chat.directory.list_teams()

    teams = run(action)
    if echo_json(teams, ctx):
        return
    if not teams:
        echo_text("No teams found", ctx)
        return
    for team in sorted(teams, key=lambda t: t.name):
        echo_text(f"  {team.name} ({team.team_id})", ctx)


@app.command("delete")
@error_feedback
def delete_cmd(
    ctx: typer.Context,
    team: str = typer.Argument(..., help="Team name or id"),
):
    """Delete a team, its roster and its messages."""

    async def action(chat: Chat) -> bool:
        found = await resolve_team(chat, team)
        return await chat.delete_team(found.team_id)

    run(action)
    echo_json({"status": "deleted", "team": team}, ctx) or echo_text(f"Deleted {team}", ctx)
