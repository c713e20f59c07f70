from typing import List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction, UserRole
from sitebudget.errors import DuplicateError, InputError, NotFoundError
from sitebudget.models.project_assignment import ProjectAssignment
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService


class ProjectAssignmentService:
    """
    Team leaders assigned to projects. An assignment is what lets a team leader
    propose amendments / change orders and enter costs on that project.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def list_assignments(self, *, tenant_id: str, project_id: Optional[str] = None) -> List[ProjectAssignment]:
        query = self.db.query(ProjectAssignment).filter(ProjectAssignment.tenant_id == tenant_id)
        if project_id:
            query = query.filter(ProjectAssignment.project_id == project_id)
        return query.order_by(ProjectAssignment.created_at).all()

    def assign(self, *, tenant_id: str, project_id: str, user: User, operator_id: str) -> ProjectAssignment:
        '''
        :param user: user of the same tenant, must be a team leader
        '''
        if user.company_id != tenant_id:
            raise NotFoundError("User", user.id)
        if user.role != UserRole.team_leader:
            raise InputError("Only team leaders can be assigned to projects", details={"field": "userId"})

        exists = (
            self.db.query(ProjectAssignment)
            .filter(
                ProjectAssignment.tenant_id == tenant_id,
                ProjectAssignment.project_id == project_id,
                ProjectAssignment.user_id == user.id,
            )
            .first()
        )
        if exists:
            raise DuplicateError("User is already assigned to this project")

        assignment = ProjectAssignment(
            id=str(uuid4()),
            project_id=project_id,
            user_id=user.id,
            assigned_by=operator_id,
            tenant_id=tenant_id,
        )
        self.db.add(assignment)
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.project_assignment_created,
            entity_type="project_assignment",
            entity_id=assignment.id,
            user_id=operator_id,
            tenant_id=tenant_id,
            project_id=project_id,
            details={"assigned_user_id": user.id},
        )
        return assignment

    def unassign(self, *, tenant_id: str, project_id: str, user_id: str, operator_id: str) -> None:
        assignment = (
            self.db.query(ProjectAssignment)
            .filter(
                ProjectAssignment.tenant_id == tenant_id,
                ProjectAssignment.project_id == project_id,
                ProjectAssignment.user_id == user_id,
            )
            .first()
        )
        if not assignment:
            raise NotFoundError("Project assignment")
        self.db.delete(assignment)
        self.audit_log_service.record(
            action=AuditAction.project_assignment_removed,
            entity_type="project_assignment",
            entity_id=assignment.id,
            user_id=operator_id,
            tenant_id=tenant_id,
            project_id=project_id,
            details={"assigned_user_id": user_id},
        )
