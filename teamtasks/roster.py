"""Team roster: every registered user joined with their presence row."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from teamtasks.auth import AuthService, display_name
from teamtasks.backend import BackendClient


logger = logging.getLogger(__name__)

ROSTER_INTERVAL_SECONDS = 5


@dataclass(frozen=True)
class TeamMember:
    user_id: str
    is_online: bool
    last_seen: str
    email: str
    name: str

    @property
    def initials(self) -> str:
        return initials(self.name)


def initials(name: str) -> str:
    return "".join(part[0] for part in (name or "").split() if part).upper()


def build_roster(users: Iterable[Dict[str, Any]], presence_rows: Iterable[Dict[str, Any]]) -> List[TeamMember]:
    """Join users with presence; users without a row show as offline since sign-up."""
    presence = {p["user_id"]: p for p in presence_rows}
    members = []
    for user in users:
        p = presence.get(user["id"])
        members.append(TeamMember(
            user_id=user["id"],
            is_online=bool(p and p.get("is_online")),
            last_seen=(p or {}).get("last_seen") or user.get("created_at"),
            email=user.get("email") or "",
            name=display_name(user),
        ))
    return members


def load_team_members(client: BackendClient, auth: AuthService) -> Optional[List[TeamMember]]:
    users = auth.list_users()
    if users.error:
        logger.error("Error listing users: %s", users.error)
        return None
    presence = client.table("user_presence").select().in_("user_id", [u["id"] for u in users.data]).execute()
    if presence.error:
        # Still show the team, everyone offline.
        logger.error("Error loading presence: %s", presence.error)
    return build_roster(users.data, presence.data or [])
