"""Notification endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from huddle.chat import Chat

from .deps import get_chat, http_error

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user_id: str, unread: bool = False, chat: Chat = Depends(get_chat)
):
    try:
        return [asdict(n) for n in await chat.notifications.list_for(user_id, unread_only=unread)]
    except Exception as e:
        raise http_error(e) from e


@router.get("/count")
async def unread_count(user_id: str, chat: Chat = Depends(get_chat)):
    try:
        return {"unread": await chat.notifications.unread_count(user_id)}
    except Exception as e:
        raise http_error(e) from e


@router.post("/read-all")
async def mark_all_read(user_id: str, chat: Chat = Depends(get_chat)):
    try:
        return {"ok": True, "marked": await chat.notifications.mark_all_read(user_id)}
    except Exception as e:
        raise http_error(e) from e


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, user_id: str, chat: Chat = Depends(get_chat)):
    try:
        return {"ok": True, "marked": await chat.notifications.mark_read(notification_id, user_id)}
    except Exception as e:
        raise http_error(e) from e


@router.delete("/{notification_id}")
async def remove(notification_id: str, user_id: str, chat: Chat = Depends(get_chat)):
    try:
        if not await chat.notifications.remove(notification_id, user_id):
            raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
        return {"ok": True}
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e) from e
