from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from sitebudget.db.enums import AuditAction, TeamRole
from sitebudget.errors import DuplicateError, NotFoundError
from sitebudget.models.team import Team, TeamMember
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService


class TeamService:
    """
    Teams of a tenant. Leader and members must belong to the same tenant.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def _tenant_user(self, tenant_id: str, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        user = self.db.query(User).filter(User.id == user_id, User.company_id == tenant_id).first()
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def _ensure_unique_name(self, tenant_id: str, name: str, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(Team.id).filter(
            Team.tenant_id == tenant_id,
            func.lower(Team.name) == name.strip().lower(),
        )
        if exclude_id:
            query = query.filter(Team.id != exclude_id)
        if query.first():
            raise DuplicateError(f"Team '{name.strip()}' already exists", details={"field": "name"})

    def list_teams(self, *, tenant_id: str) -> List[Team]:
        return (
            self.db.query(Team)
            .options(selectinload(Team.members))
            .filter(Team.tenant_id == tenant_id)
            .order_by(Team.name)
            .all()
        )

    def get_team(self, *, tenant_id: str, team_id: str) -> Team:
        team = self.db.query(Team).filter(Team.id == team_id, Team.tenant_id == tenant_id).first()
        if not team:
            raise NotFoundError("Team", team_id)
        return team

    def create_team(
        self,
        *,
        tenant_id: str,
        name: str,
        description: Optional[str],
        leader_id: Optional[str],
        operator_id: str,
    ) -> Team:
        self._ensure_unique_name(tenant_id, name)
        leader = self._tenant_user(tenant_id, leader_id)

        team = Team(
            id=str(uuid4()),
            name=name.strip(),
            description=description,
            leader_id=leader.id if leader else None,
            tenant_id=tenant_id,
        )
        self.db.add(team)
        if leader:
            team.members.append(TeamMember(user_id=leader.id, role_in_team=TeamRole.lead, tenant_id=tenant_id))
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.team_created,
            entity_type="team",
            entity_id=team.id,
            user_id=operator_id,
            tenant_id=tenant_id,
            details={"name": team.name, "leader_id": team.leader_id},
        )
        return team

    def update_team(self, *, team: Team, changes: Dict, operator_id: str) -> Team:
        if changes.get("name"):
            self._ensure_unique_name(team.tenant_id, changes["name"], exclude_id=team.id)
            team.name = changes["name"].strip()
        if "description" in changes and changes["description"] is not None:
            team.description = changes["description"]
        if "leader_id" in changes:
            leader = self._tenant_user(team.tenant_id, changes["leader_id"])
            team.leader_id = leader.id if leader else None
            if leader and not any(m.user_id == leader.id for m in team.members):
                team.members.append(TeamMember(user_id=leader.id, role_in_team=TeamRole.lead, tenant_id=team.tenant_id))
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.team_updated,
            entity_type="team",
            entity_id=team.id,
            user_id=operator_id,
            tenant_id=team.tenant_id,
            details={"changes": changes},
        )
        return team

    def delete_team(self, *, team: Team, operator_id: str) -> None:
        self.audit_log_service.record(
            action=AuditAction.team_deleted,
            entity_type="team",
            entity_id=team.id,
            user_id=operator_id,
            tenant_id=team.tenant_id,
            details={"name": team.name},
        )
        self.db.delete(team)
        self.db.flush()

    def add_member(self, *, team: Team, user_id: str, role_in_team: TeamRole, operator_id: str) -> TeamMember:
        user = self._tenant_user(team.tenant_id, user_id)
        if any(m.user_id == user.id for m in team.members):
            raise DuplicateError("User is already a member of this team")
        member = TeamMember(user_id=user.id, role_in_team=role_in_team, tenant_id=team.tenant_id)
        team.members.append(member)
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.team_member_added,
            entity_type="team",
            entity_id=team.id,
            user_id=operator_id,
            tenant_id=team.tenant_id,
            details={"member_id": user.id, "role_in_team": role_in_team},
        )
        return member

    def remove_member(self, *, team: Team, user_id: str, operator_id: str) -> None:
        member = next((m for m in team.members if m.user_id == user_id), None)
        if member is None:
            raise NotFoundError("Team member", user_id)
        team.members.remove(member)
        if team.leader_id == user_id:
            team.leader_id = None
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.team_member_removed,
            entity_type="team",
            entity_id=team.id,
            user_id=operator_id,
            tenant_id=team.tenant_id,
            details={"member_id": user_id},
        )
