"""Team directory: teams and their rosters."""

import logging
from typing import Protocol

from huddle.errors import TeamNotFoundError
from huddle.lib import clock
from huddle.lib.store import LiveStore, Query
from huddle.models import Team, TeamMember, from_value, to_value

log = logging.getLogger(__name__)

TEAMS = "teams"
MEMBERS = "team_members"


class TeamDirectory(Protocol):
    async def get_active_members(self, team_id: str) -> list[TeamMember]: ...

    async def get_team(self, team_id: str) -> Team | None: ...


def _member_key(team_id: str, user_id: str) -> str:
    return f"{team_id}:{user_id}"


class StoreDirectory:
    """TeamDirectory backed by the live store."""

    def __init__(self, live: LiveStore):
        self.live = live

    async def create_team(self, name: str) -> Team:
        name = name.strip()
        if not name:
            raise ValueError("Team name is required")
        team = Team(team_id=self.live.push_key(), name=name, created_at=clock.now())
        await self.live.set(f"{TEAMS}/{team.team_id}", to_value(team))
        return team

    async def get_team(self, team_id: str) -> Team | None:
        value = await self.live.get(f"{TEAMS}/{team_id}")
        return from_value(value, Team) if value else None

    async def find_team(self, team: str) -> Team | None:
        """Resolve a team by id or exact name."""
        found = await self.get_team(team)
        if found:
            return found
        for value in (await self.live.fetch(Query(TEAMS))).values():
            if value.get("name") == team:
                return from_value(value, Team)
        return None

    async def list_teams(self) -> list[Team]:
        return [from_value(v, Team) for v in (await self.live.fetch(Query(TEAMS))).values()]

    async def add_member(
        self, team_id: str, user_id: str, user_name: str, user_email: str = ""
    ) -> TeamMember:
        if not await self.get_team(team_id):
            raise TeamNotFoundError(f"Team '{team_id}' not found")
        if not user_id or not user_name.strip():
            raise ValueError("user_id and user_name are required")
        member = TeamMember(
            team_id=team_id,
            user_id=user_id,
            user_name=user_name.strip(),
            user_email=user_email,
            joined_at=clock.now(),
        )
        await self.live.set(f"{MEMBERS}/{_member_key(team_id, user_id)}", to_value(member))
        return member

    async def deactivate_member(self, team_id: str, user_id: str) -> bool:
        return await self.live.update(
            f"{MEMBERS}/{_member_key(team_id, user_id)}", {"is_active": False}
        )

    async def get_members(self, team_id: str) -> list[TeamMember]:
        rows = await self.live.fetch(Query(MEMBERS, "team_id", team_id))
        return [from_value(v, TeamMember) for v in rows.values()]

    async def get_active_members(self, team_id: str) -> list[TeamMember]:
        team = await self.get_team(team_id)
        if not team or not team.is_active:
            return []
        return [m for m in await self.get_members(team_id) if m.is_active]

    async def list_user_teams(self, user_id: str) -> list[Team]:
        memberships = await self.live.fetch(Query(MEMBERS, "user_id", user_id))
        teams = []
        for value in memberships.values():
            if not value.get("is_active", True):
                continue
            team = await self.get_team(value["team_id"])
            if team and team.is_active:
                teams.append(team)
        return teams

    async def delete_team(self, team_id: str) -> bool:
        removed = await self.live.remove(f"{TEAMS}/{team_id}")
        await self.live.remove_where(Query(MEMBERS, "team_id", team_id))
        if removed:
            log.info(f"Deleted team {team_id}")
        return removed
