import logging
from typing import List, Optional

from workhub.core.errors import Forbidden, NotFound, ValidationFailed
from workhub.db.store import EntityStore
from workhub.models.team import Team
from workhub.models.user import User
from workhub.schemas.team import TeamCreate, TeamUpdate
from workhub.services.identity import Principal
from workhub.services.policy import Action, TeamCreation, can
from workhub.services.policy import TeamUpdate as TeamUpdateTarget

logger = logging.getLogger(__name__)


def load_users(store: EntityStore, user_ids: List[int]) -> List[User]:
    """Fetch users by id, rejecting ids that do not exist"""
    wanted = list(dict.fromkeys(user_ids))
    if not wanted:
        return []
    users = store.find(User, User.id.in_(wanted))
    missing = sorted(set(wanted) - {user.id for user in users})
    if missing:
        raise ValidationFailed("Unknown user id(s)", {"userIds": missing})
    return users


class TeamService:
    def __init__(self, store: EntityStore):
        self.store = store

    def list(self, principal: Principal) -> List[Team]:
        if principal.is_guest:
            raise Forbidden("Guests cannot view teams")
        return self.store.find(Team, order_by=Team.created_at.desc())

    def create(self, principal: Principal, data: TeamCreate) -> Team:
        name = self._clean_name(data.name)
        can(principal, Action.CREATE_TEAM, TeamCreation(
            name_taken=self.store.find_one(Team, name=name) is not None,
        )).enforce()
        self._check_leader(data.leader_id)

        team = Team(name=name, description=data.description, leader_id=data.leader_id)
        team.members = load_users(self.store, data.member_ids)
        self.store.insert(team)
        self.store.commit()
        logger.info("Team %s created by %s", team.id, principal.id)
        return team

    def update(self, principal: Principal, team_id: int, data: TeamUpdate) -> Team:
        team = self._get_team(team_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        else:
            changes["name"] = self._clean_name(changes["name"])
        changes_details = any(field in changes for field in ("name", "leader_id", "description"))
        can(principal, Action.UPDATE_TEAM, TeamUpdateTarget(
            leader_id=team.leader_id,
            changes_details=changes_details,
        )).enforce()

        if "name" in changes and changes["name"] != team.name:
            can(principal, Action.CREATE_TEAM, TeamCreation(
                name_taken=self.store.find_one(Team, name=changes["name"]) is not None,
            )).enforce()
            team.name = changes["name"]
        if "leader_id" in changes:
            self._check_leader(changes["leader_id"])
            team.leader_id = changes["leader_id"]
        if "description" in changes:
            team.description = changes["description"]
        if data.member_ids is not None:
            team.members = load_users(self.store, data.member_ids)

        self.store.commit()
        return team

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationFailed("Team name is required")
        return cleaned

    def delete(self, principal: Principal, team_id: int) -> None:
        can(principal, Action.DELETE_TEAM).enforce()
        team = self._get_team(team_id)
        self.store.delete(team)
        self.store.commit()
        logger.info("Team %s deleted by %s", team_id, principal.id)

    def _get_team(self, team_id: int) -> Team:
        team = self.store.find_by_id(Team, team_id)
        if team is None:
            raise NotFound("Team not found", {"teamId": team_id})
        return team

    def _check_leader(self, leader_id: Optional[int]) -> None:
        if leader_id is not None and self.store.find_by_id(User, leader_id) is None:
            raise ValidationFailed("Team leader not found", {"leaderId": leader_id})
