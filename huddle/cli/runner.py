import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from huddle.chat import Chat, open_chat
from huddle.errors import TeamNotFoundError
from huddle.models import Team

T = TypeVar("T")


def run(action: Callable[[Chat], Awaitable[T]]) -> T:
    """Run action against a fresh Chat, waiting for background mention dispatch."""

    async def main() -> T:
        chat = open_chat()
        try:
            return await action(chat)
        finally:
            await chat.close()

    return asyncio.run(main())


async def resolve_team(chat: Chat, team: str) -> Team:
    found = await chat.directory.find_team(team)
    if found is None:
        raise TeamNotFoundError(f"Team '{team}' not found")
    return found

