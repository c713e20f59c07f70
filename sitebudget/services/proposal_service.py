# sitebudget/services/proposal_service.py
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import desc

from sitebudget.db.enums import ApprovalStatus, AuditAction
from sitebudget.errors import InputError
from sitebudget.logger import get_logger
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.approvable_service import ApprovableService
from sitebudget.services.budget_impact import (
    BudgetImpact,
    ZERO,
    is_significant,
    preview_budget_impact,
    significance_threshold,
)

logger = get_logger(__name__)


class ProposalService(ApprovableService):
    """
    Budget-affecting proposals (amendments, change orders).
    Approval adds the signed amount to Project.budget in the database.
    """

    kind: str = None  # "amendment" / "change_order"
    amount_attr: str = None  # amount_added / cost_impact
    created_action: AuditAction = None

    def _amount(self, record) -> Decimal:
        return getattr(record, self.amount_attr)

    def _create(
        self,
        *,
        user: User,
        project: Project,
        amount: Decimal,
        status: ApprovalStatus,
        **fields,
    ):
        self.permission_service.require_project_mutation(user, project)

        record = self.model(
            id=str(uuid4()),
            project_id=project.id,
            tenant_id=project.tenant_id,
            proposed_by=user.id,
            status=status,
            **{self.amount_attr: amount},
            **fields,
        )
        self.db.add(record)
        self.db.flush()
        self._open_workflow(record, status)

        self.audit_log_service.record(
            action=self.created_action,
            entity_type=self.entity_type,
            entity_id=record.id,
            user_id=user.id,
            tenant_id=project.tenant_id,
            project_id=project.id,
            amount=amount,
            details={"status": status},
        )
        logger.info(f"{self.entity_type} {record.id} proposed on project {project.id}: {amount} ({status.value})")
        return record

    def _on_approved(self, record, user: User) -> None:
        amount = self._amount(record)
        if amount == ZERO:
            return  # informational change order
        project = self.apply_project_delta(
            project_id=record.project_id,
            tenant_id=record.tenant_id,
            budget=amount,
        )
        self.audit_log_service.record(
            action=AuditAction.budget_amended,
            entity_type="project",
            entity_id=project.id,
            user_id=user.id,
            tenant_id=project.tenant_id,
            project_id=project.id,
            amount=amount,
            details={"source": self.entity_type, "record_id": record.id, "new_budget": project.budget},
        )
        logger.info(f"Project {project.id} budget now {project.budget} after {self.entity_type} {record.id}")

    # =========
    # Reads
    # =========
    def list_records(
        self,
        *,
        tenant_id: str,
        project_ids: Optional[List[str]] = None,
        project_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> list:
        query = self.db.query(self.model).filter(self.model.tenant_id == tenant_id)
        if project_ids is not None:
            query = query.filter(self.model.project_id.in_(project_ids))
        if project_id:
            query = query.filter(self.model.project_id == project_id)
        if status:
            query = query.filter(self.model.status == status)
        return query.order_by(desc(self.model.created_at)).all()

    def preview(self, *, project: Project, amount: Decimal) -> BudgetImpact:
        return preview_budget_impact(project.budget, amount, project.consumed_amount, self.kind)

    def enrich(self, records: list) -> List[Dict]:
        '''
        Join the display context a listing needs: project title, proposer and
        approver names and the significance flag against the project's live budget.
        '''
        project_ids = {r.project_id for r in records}
        user_ids = {r.proposed_by for r in records} | {r.approved_by for r in records if r.approved_by}
        projects = {
            p.id: p for p in self.db.query(Project).filter(Project.id.in_(project_ids)).all()
        } if project_ids else {}
        users = {
            u.id: u for u in self.db.query(User).filter(User.id.in_(user_ids)).all()
        } if user_ids else {}

        threshold = significance_threshold(self.kind)
        rows = []
        for record in records:
            project = projects.get(record.project_id)
            proposer = users.get(record.proposed_by)
            approver = users.get(record.approved_by) if record.approved_by else None
            rows.append({
                "record": record,
                "project_title": project.title if project else None,
                "proposer_name": proposer.display_name if proposer else None,
                "approver_name": approver.display_name if approver else None,
                "is_significant": is_significant(self._amount(record), project.budget, threshold) if project else False,
            })
        return rows


def validate_text_length(value: Optional[str], *, field: str, minimum: int, maximum: int) -> str:
    text = (value or "").strip()
    if len(text) < minimum or len(text) > maximum:
        raise InputError(
            f"{field} must be between {minimum} and {maximum} characters",
            details={"field": field, "length": len(text)},
        )
    return text
