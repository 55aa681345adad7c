"""Shared Chat for the HTTP surface and error translation."""

from fastapi import HTTPException

from huddle.chat import Chat, CueEngine, open_chat
from huddle.chat.tones import NullPlayer
from huddle.errors import (
    AuthorizationError,
    MessageNotFoundError,
    TeamNotFoundError,
)

_chat: Chat | None = None


def get_chat() -> Chat:
    # The server never plays sounds; its engine stays locked.
    global _chat
    if _chat is None:
        _chat = open_chat(engine=CueEngine(player=NullPlayer()))
    return _chat


def _reset_chat() -> None:
    global _chat
    _chat = None


def http_error(e: Exception) -> HTTPException:
    if isinstance(e, AuthorizationError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, (TeamNotFoundError, MessageNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))
