"""Team, message, read-mark and stream endpoints."""

import asyncio
import json
from collections.abc import AsyncGenerator
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from huddle import config
from huddle.chat import Chat
from huddle.errors import MessageNotFoundError, TeamNotFoundError
from huddle.models import Message

from .deps import get_chat, http_error

router = APIRouter(prefix="/api", tags=["teams"])


class CreateTeam(BaseModel):
    name: str
    user_id: str | None = None
    user_name: str | None = None


class AddMember(BaseModel):
    user_id: str
    user_name: str
    user_email: str = ""


class SendMessage(BaseModel):
    sender_id: str
    content: str
    reply_to: str | None = None


class EditMessage(BaseModel):
    user_id: str
    content: str


class React(BaseModel):
    user_id: str
    emoji: str


async def _team(chat: Chat, team_id: str):
    team = await chat.directory.get_team(team_id)
    if team is None:
        raise TeamNotFoundError(f"Team '{team_id}' not found")
    return team


@router.get("/teams")
async def list_teams(user_id: str | None = None, chat: Chat = Depends(get_chat)):
    try:
        if user_id:
            teams = await chat.directory.list_user_teams(user_id)
        else:
            teams = await chat.directory.list_teams()
        return [asdict(t) for t in teams]
    except Exception as e:
        raise http_error(e) from e


@router.post("/teams")
async def create_team(body: CreateTeam, chat: Chat = Depends(get_chat)):
    try:
        team = await chat.directory.create_team(body.name)
        if body.user_id:
            await chat.directory.add_member(
                team.team_id, body.user_id, body.user_name or body.user_id
            )
        return asdict(team)
    except Exception as e:
        raise http_error(e) from e


@router.get("/teams/{team_id}/members")
async def get_members(team_id: str, chat: Chat = Depends(get_chat)):
    try:
        await _team(chat, team_id)
        return [asdict(m) for m in await chat.directory.get_active_members(team_id)]
    except Exception as e:
        raise http_error(e) from e


@router.post("/teams/{team_id}/members")
async def add_member(team_id: str, body: AddMember, chat: Chat = Depends(get_chat)):
    try:
        member = await chat.directory.add_member(
            team_id, body.user_id, body.user_name, body.user_email
        )
        return asdict(member)
    except Exception as e:
        raise http_error(e) from e


@router.delete("/teams/{team_id}/members/{user_id}")
async def remove_member(team_id: str, user_id: str, chat: Chat = Depends(get_chat)):
    try:
        if not await chat.directory.deactivate_member(team_id, user_id):
            raise HTTPException(status_code=404, detail=f"'{user_id}' is not in {team_id}")
        return {"ok": True}
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e) from e


@router.get("/teams/{team_id}/messages")
async def get_messages(team_id: str, limit: int | None = None, chat: Chat = Depends(get_chat)):
    try:
        await _team(chat, team_id)
        return [asdict(m) for m in await chat.messages.get_messages(team_id, limit)]
    except Exception as e:
        raise http_error(e) from e


@router.post("/teams/{team_id}/messages")
async def send_message(team_id: str, body: SendMessage, chat: Chat = Depends(get_chat)):
    try:
        message_id = await chat.send(team_id, body.sender_id, body.content, body.reply_to)
        return {"ok": True, "message_id": message_id}
    except Exception as e:
        raise http_error(e) from e


@router.patch("/messages/{message_id}")
async def edit_message(message_id: str, body: EditMessage, chat: Chat = Depends(get_chat)):
    try:
        await chat.own_message(message_id, body.user_id)
        await chat.messages.edit(message_id, body.content)
        return {"ok": True}
    except Exception as e:
        raise http_error(e) from e


@router.delete("/messages/{message_id}")
async def delete_message(message_id: str, user_id: str, chat: Chat = Depends(get_chat)):
    try:
        await chat.own_message(message_id, user_id)
        await chat.messages.delete(message_id)
        return {"ok": True}
    except Exception as e:
        raise http_error(e) from e


@router.post("/messages/{message_id}/reactions")
async def react(message_id: str, body: React, chat: Chat = Depends(get_chat)):
    try:
        message = await chat.messages.get(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message '{message_id}' not found")
        member = await chat.require_member(message.team_id, body.user_id)
        await chat.messages.add_reaction(message_id, body.emoji, body.user_id, member.user_name)
        return {"ok": True}
    except Exception as e:
        raise http_error(e) from e


@router.post("/teams/{team_id}/read")
async def mark_read(team_id: str, user_id: str, chat: Chat = Depends(get_chat)):
    try:
        timestamp = await chat.reads.mark_read(user_id, team_id)
        return {"ok": True, "timestamp": timestamp}
    except Exception as e:
        raise http_error(e) from e


@router.get("/unread")
async def unread_counts(user_id: str, chat: Chat = Depends(get_chat)):
    try:
        return {
            team.team_id: await chat.reads.unread_count(user_id, team.team_id)
            for team in await chat.directory.list_user_teams(user_id)
        }
    except Exception as e:
        raise http_error(e) from e


async def team_events(
    chat: Chat, team_id: str, poll_interval: float | None = None
) -> AsyncGenerator[str, None]:
    """Server-sent events: the team's ordered log, now and after every change."""
    poll_interval = poll_interval or config.get("poll_interval", 0.5)
    queue: asyncio.Queue[list[Message]] = asyncio.Queue()
    stop = chat.messages.subscribe(team_id, queue.put_nowait)
    try:
        while True:
            while not queue.empty():
                messages = queue.get_nowait()
                yield f"data: {json.dumps([asdict(m) for m in messages])}\n\n"
            await asyncio.sleep(poll_interval)
            chat.live.poll()
    finally:
        stop()


@router.get("/teams/{team_id}/stream")
async def stream_team(team_id: str, chat: Chat = Depends(get_chat)) -> StreamingResponse:
    try:
        await _team(chat, team_id)
    except Exception as e:
        raise http_error(e) from e

    return StreamingResponse(
        team_events(chat, team_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
