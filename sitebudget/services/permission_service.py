# sitebudget/services/permission_service.py
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from sitebudget.db.enums import UserRole
from sitebudget.errors import NotFoundError, PermissionDeniedError
from sitebudget.models.project import Project
from sitebudget.models.project_assignment import ProjectAssignment
from sitebudget.models.user import User

# roles that see every project of their tenant
TENANT_WIDE_ROLES = (UserRole.admin, UserRole.manager, UserRole.console_manager)


class PermissionService:
    """
    Who may see and who may mutate what, inside one tenant.

    - admin: everything in the tenant
    - team_leader: proposals / cost allocations on projects assigned to them
    - manager, console_manager: read the whole tenant
    - user, viewer: read projects they manage or are assigned to
    """

    def __init__(self, db: Session):
        self.db = db

    # =========
    # Role checks
    # =========
    def require_role(self, user: User, *roles: UserRole) -> None:
        if user.role not in roles:
            raise PermissionDeniedError(
                f"Role '{user.role.value}' may not perform this action",
                granted_by=[role.value for role in roles],
            )

    def require_admin(self, user: User) -> None:
        self.require_role(user, UserRole.admin)

    # =========
    # Project visibility
    # =========
    def is_assigned(self, user: User, project_id: str) -> bool:
        return (
            self.db.query(ProjectAssignment.id)
            .filter(
                ProjectAssignment.tenant_id == user.company_id,
                ProjectAssignment.project_id == project_id,
                ProjectAssignment.user_id == user.id,
            )
            .first()
            is not None
        )

    def visible_project_ids(self, user: User) -> Optional[List[str]]:
        """
        :return: None when the user sees the whole tenant, else the visible project ids
        """
        if user.role in TENANT_WIDE_ROLES:
            return None
        assigned = (
            self.db.query(ProjectAssignment.project_id)
            .filter(
                ProjectAssignment.tenant_id == user.company_id,
                ProjectAssignment.user_id == user.id,
            )
        )
        rows = (
            self.db.query(Project.id)
            .filter(
                Project.tenant_id == user.company_id,
                or_(Project.manager_id == user.id, Project.id.in_(assigned)),
            )
            .all()
        )
        return [row.id for row in rows]

    def get_visible_project(self, user: User, project_id: str) -> Project:
        '''
        Load a project of the user's tenant the user may read.
        Projects of another tenant are reported as missing, not forbidden.
        '''
        project = (
            self.db.query(Project)
            .filter(Project.id == project_id, Project.tenant_id == user.company_id)
            .first()
        )
        if not project:
            raise NotFoundError("Project", project_id)
        if user.role in TENANT_WIDE_ROLES or project.manager_id == user.id:
            return project
        if not self.is_assigned(user, project_id):
            raise PermissionDeniedError(
                "You do not have access to this project",
                granted_by=["admin", "manager", "project manager", "assigned project member"],
            )
        return project

    # =========
    # Ledger mutation rights
    # =========
    def require_project_mutation(self, user: User, project: Project) -> None:
        '''
        Proposing amendments / change orders and entering cost allocations:
        admin always, team leader only on an assigned project.
        '''
        if user.role == UserRole.admin:
            return
        if user.role == UserRole.team_leader and self.is_assigned(user, project.id):
            return
        raise PermissionDeniedError(
            "Only admins and team leaders assigned to this project may change its ledger",
            granted_by=["admin", "team_leader assigned to the project"],
        )
