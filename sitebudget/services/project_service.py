from typing import Dict, List, Optional
from uuid import uuid4
from datetime import datetime
from decimal import Decimal

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction
from sitebudget.errors import InputError, NotFoundError
from sitebudget.logger import get_logger
from sitebudget.models.project import Project
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_impact import ZERO

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("title", "description", "start_date", "end_date", "status", "budget", "revenue", "manager_id")


class ProjectService:
    """
    Service for managing Project lifecycle and metadata.
    Does NOT touch consumed_amount: that is moved only by approved cost allocations.
    Budget moves here only through the audited admin edit; amendments and
    change orders go through their own services.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def create_project(
        self,
        *,
        tenant_id: str,
        title: str,
        budget: Decimal,
        start_date: datetime,
        end_date: datetime,
        manager_id: str,
        description: Optional[str] = None,
        revenue: Decimal = ZERO,
        status: str = "active",
    ) -> Project:
        '''
        Create a new project.

        :param tenant_id: owning tenant
        :type tenant_id: str
        :param budget: initial budget, >= 0
        :type budget: Decimal
        :param manager_id: creating / managing user
        :type manager_id: str
        :return: the project
        :rtype: Project
        '''
        if budget < ZERO:
            raise InputError("Budget can not be negative", details={"field": "budget"})
        if end_date < start_date:
            raise InputError("End date must not be before start date", details={"field": "endDate"})

        project = Project(
            id=str(uuid4()),
            tenant_id=tenant_id,
            manager_id=manager_id,
            title=title.strip(),
            description=description,
            start_date=start_date,
            end_date=end_date,
            status=status,
            budget=budget,
            initial_budget=budget,
            consumed_amount=ZERO,
            revenue=revenue,
        )
        self.db.add(project)
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.project_created,
            entity_type="project",
            entity_id=project.id,
            user_id=manager_id,
            tenant_id=tenant_id,
            project_id=project.id,
            amount=budget,
            details={"title": project.title},
        )
        logger.info(f"Project {project.id} created with budget {budget}")
        return project

    def get_project(self, *, tenant_id: str, project_id: str) -> Project:
        project = (
            self.db.query(Project)
            .filter(Project.id == project_id, Project.tenant_id == tenant_id)
            .first()
        )
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    def list_projects(
        self,
        *,
        tenant_id: str,
        project_ids: Optional[List[str]] = None,
        status: Optional[str] = None,
    ) -> List[Project]:
        """
        :param project_ids: visibility restriction, None means the whole tenant
        """
        query = self.db.query(Project).filter(Project.tenant_id == tenant_id)
        if project_ids is not None:
            query = query.filter(Project.id.in_(project_ids))
        if status:
            query = query.filter(Project.status == status)
        return query.order_by(desc(Project.updated_at)).all()

    def update_project(self, *, project: Project, changes: Dict, operator_id: str) -> Project:
        '''
        Admin edit. A changed budget gets its own audit row with the amount delta.
        '''
        if changes.get("budget") is not None and changes["budget"] < ZERO:
            raise InputError("Budget can not be negative", details={"field": "budget"})

        before, after = {}, {}
        for field in UPDATABLE_FIELDS:
            if field not in changes or changes[field] is None:
                continue
            if getattr(project, field) != changes[field]:
                before[field] = getattr(project, field)
                after[field] = changes[field]
                setattr(project, field, changes[field])

        if project.end_date < project.start_date:
            raise InputError("End date must not be before start date", details={"field": "endDate"})

        if "budget" in after:
            # history replays approved proposals on top of initial_budget, so a direct edit shifts it
            project.initial_budget = project.initial_budget + (after["budget"] - before["budget"])
            self.audit_log_service.record_update(
                action=AuditAction.project_updated,
                entity_type="project",
                entity_id=project.id,
                changed_attribute="budget",
                before_value=before["budget"],
                after_value=after["budget"],
                user_id=operator_id,
                tenant_id=project.tenant_id,
                project_id=project.id,
                amount=after["budget"] - before["budget"],
            )
            logger.info(f"Project {project.id} budget edited directly {before['budget']} -> {after['budget']}")
        other = {k: v for k, v in after.items() if k != "budget"}
        if other:
            self.audit_log_service.record(
                action=AuditAction.project_updated,
                entity_type="project",
                entity_id=project.id,
                user_id=operator_id,
                tenant_id=project.tenant_id,
                project_id=project.id,
                details={"before": {k: before[k] for k in other}, "after": other},
            )
        self.db.flush()
        return project
