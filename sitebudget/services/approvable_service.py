# sitebudget/services/approvable_service.py
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.orm import Session

from sitebudget.db.enums import (
    ApprovalStatus,
    AuditAction,
    OPEN_APPROVAL_STATUSES,
    WorkflowTable,
)
from sitebudget.errors import InputError, InvalidTransitionError, NotFoundError
from sitebudget.logger import get_logger
from sitebudget.models.approval_workflow import ApprovalWorkflow
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.permission_service import PermissionService

logger = get_logger(__name__)


class ApprovableService:
    """
    Shared draft/pending -> approved | rejected lifecycle.

    Every decision is one compare-and-swap UPDATE guarded by
    status IN ('draft', 'pending'): of two concurrent deciders exactly one
    wins, the other gets InvalidTransitionError. Nothing is ever applied twice.

    Subclasses set model / workflow_table / entity_type and may override
    _check_decider, _decision_values and _on_approved.
    """

    model: Any = None
    workflow_table: WorkflowTable = None
    entity_type: str = None

    def __init__(
        self,
        db: Session,
        audit_log_service: AuditLogService,
        permission_service: PermissionService,
    ):
        self.db = db
        self.audit_log_service = audit_log_service
        self.permission_service = permission_service

    # =========
    # Lookup
    # =========
    def get_record(self, *, tenant_id: str, record_id: str):
        record = (
            self.db.query(self.model)
            .filter(self.model.id == record_id, self.model.tenant_id == tenant_id)
            .first()
        )
        if not record:
            raise NotFoundError(self.entity_type, record_id)
        return record

    def _get_project(self, record) -> Project:
        return (
            self.db.query(Project)
            .filter(Project.id == record.project_id, Project.tenant_id == record.tenant_id)
            .one()
        )

    # =========
    # Workflow rows
    # =========
    def _open_workflow(self, record, status: ApprovalStatus) -> ApprovalWorkflow:
        workflow = ApprovalWorkflow(
            id=str(uuid4()),
            related_table=self.workflow_table,
            record_id=record.id,
            status=status,
            tenant_id=record.tenant_id,
        )
        self.db.add(workflow)
        # sessions do not autoflush; a decision in the same session must find this row
        self.db.flush()
        return workflow

    def _sync_workflow(self, record, *, status: ApprovalStatus, approver_id: str, comments: Optional[str]) -> None:
        workflow = (
            self.db.query(ApprovalWorkflow)
            .filter(
                ApprovalWorkflow.related_table == self.workflow_table,
                ApprovalWorkflow.record_id == record.id,
                ApprovalWorkflow.tenant_id == record.tenant_id,
            )
            .first()
        )
        if workflow is None:
            workflow = self._open_workflow(record, status)
        workflow.status = status
        workflow.approver_id = approver_id
        workflow.comments = comments

    # =========
    # Hooks
    # =========
    def _check_decider(self, user: User, record) -> None:
        self.permission_service.require_admin(user)

    def _decision_values(self, user: User, status: ApprovalStatus, comments: Optional[str]) -> Dict[str, Any]:
        now = datetime.now()
        return {
            "status": status,
            "approved_by": user.id,
            "approved_at": now,
            "review_comments": comments,
            "updated_at": now,
        }

    def _on_approved(self, record, user: User) -> None:
        """Side effect of an approval. Runs only for the winning transition."""

    # =========
    # Transitions
    # =========
    def _compare_and_set(self, record, values: Dict[str, Any]) -> None:
        result = self.db.execute(
            update(self.model)
            .where(
                self.model.id == record.id,
                self.model.tenant_id == record.tenant_id,
                self.model.status.in_(OPEN_APPROVAL_STATUSES),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.refresh(record)
            logger.warning(
                f"Refused {values['status'].value} of {self.entity_type} {record.id}: already {record.status.value}"
            )
            raise InvalidTransitionError(self.entity_type, record.id, record.status.value)
        self.db.refresh(record)

    def apply_project_delta(self, *, project_id: str, tenant_id: str, budget=None, consumed=None) -> Project:
        '''
        Atomic in-database increment of the project's figures; never read-modify-write.
        '''
        values = {}
        if budget is not None:
            values["budget"] = Project.budget + budget
        if consumed is not None:
            values["consumed_amount"] = Project.consumed_amount + consumed
        project = self.db.query(Project).filter(Project.id == project_id, Project.tenant_id == tenant_id).one()
        if values:
            self.db.execute(
                update(Project)
                .where(Project.id == project_id, Project.tenant_id == tenant_id)
                .values(updated_at=datetime.now(), **values)
                .execution_options(synchronize_session=False)
            )
            self.db.refresh(project)
        return project

    def approve(self, *, user: User, record_id: str, comments: Optional[str] = None):
        '''
        :raises NotFoundError: no such record in the user's tenant
        :raises PermissionDeniedError: user may not decide on this record
        :raises InvalidTransitionError: record already approved / rejected
        '''
        record = self.get_record(tenant_id=user.company_id, record_id=record_id)
        self._check_decider(user, record)

        previous = record.status
        self._compare_and_set(record, self._decision_values(user, ApprovalStatus.approved, comments))
        self._on_approved(record, user)
        self._sync_workflow(record, status=ApprovalStatus.approved, approver_id=user.id, comments=comments)
        self._record_decision(record, user, previous, ApprovalStatus.approved, comments)
        logger.info(f"{self.entity_type} {record.id} approved by {user.id}")
        return record

    def reject(self, *, user: User, record_id: str, comments: Optional[str]):
        '''
        Terminal, no budget effect. Comments are mandatory.
        '''
        if not comments or not comments.strip():
            raise InputError("Comments are required when rejecting", details={"field": "comments"})
        comments = comments.strip()

        record = self.get_record(tenant_id=user.company_id, record_id=record_id)
        self._check_decider(user, record)

        previous = record.status
        self._compare_and_set(record, self._decision_values(user, ApprovalStatus.rejected, comments))
        self._sync_workflow(record, status=ApprovalStatus.rejected, approver_id=user.id, comments=comments)
        self._record_decision(record, user, previous, ApprovalStatus.rejected, comments)
        logger.info(f"{self.entity_type} {record.id} rejected by {user.id}")
        return record

    def _record_decision(self, record, user: User, previous: ApprovalStatus, status: ApprovalStatus, comments: Optional[str]) -> None:
        self.audit_log_service.record(
            action=AuditAction.approval_workflow_updated,
            entity_type=self.entity_type,
            entity_id=record.id,
            user_id=user.id,
            tenant_id=record.tenant_id,
            project_id=record.project_id,
            details={"before": previous, "after": status, "comments": comments},
        )
