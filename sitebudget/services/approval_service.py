# sitebudget/services/approval_service.py
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from sitebudget.db.enums import ApprovalStatus, WorkflowTable
from sitebudget.errors import NotFoundError
from sitebudget.models.approval_workflow import ApprovalWorkflow
from sitebudget.models.budget_amendment import BudgetAmendment
from sitebudget.models.change_order import ChangeOrder
from sitebudget.models.cost_allocation import CostAllocation
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.approvable_service import ApprovableService


class ApprovalService:
    """
    The approval queue: a query-time projection of pending cost allocations,
    amendments and change orders, plus dispatch of approve / reject to the
    service owning the record.
    """

    def __init__(self, db: Session, services: Dict[WorkflowTable, ApprovableService]):
        '''
        :param services: owning service per workflow table
        '''
        self.db = db
        self.services = services

    def list_pending(
        self,
        *,
        tenant_id: str,
        table: Optional[WorkflowTable] = None,
        project_ids: Optional[List[str]] = None,
    ) -> List[Dict]:
        sources = [
            (WorkflowTable.cost_allocations, CostAllocation, "total_cost", "entered_by", None),
            (WorkflowTable.budget_amendments, BudgetAmendment, "amount_added", "proposed_by", "reason"),
            (WorkflowTable.change_orders, ChangeOrder, "cost_impact", "proposed_by", "description"),
        ]
        rows = []
        for source_table, model, amount_attr, proposer_attr, text_attr in sources:
            if table is not None and table != source_table:
                continue
            query = self.db.query(model).filter(
                model.tenant_id == tenant_id,
                model.status == ApprovalStatus.pending,
            )
            if project_ids is not None:
                query = query.filter(model.project_id.in_(project_ids))
            for record in query.all():
                rows.append({
                    "kind": source_table.value,
                    "record_id": record.id,
                    "project_id": record.project_id,
                    "amount": getattr(record, amount_attr),
                    "proposed_by": getattr(record, proposer_attr),
                    "summary": getattr(record, text_attr) if text_attr else None,
                    "status": record.status,
                    "created_at": record.created_at,
                })

        project_map = {
            p.id: p.title for p in
            self.db.query(Project).filter(Project.id.in_({r["project_id"] for r in rows})).all()
        } if rows else {}
        user_map = {
            u.id: u.display_name for u in
            self.db.query(User).filter(User.id.in_({r["proposed_by"] for r in rows})).all()
        } if rows else {}
        for row in rows:
            row["project_title"] = project_map.get(row["project_id"])
            row["proposer_name"] = user_map.get(row["proposed_by"])

        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows

    def resolve(self, *, tenant_id: str, record_id: str) -> Tuple[WorkflowTable, ApprovableService]:
        '''
        Find which table a record id belongs to, through its workflow row or,
        for records created without one, by probing the tables.
        '''
        workflow = (
            self.db.query(ApprovalWorkflow)
            .filter(ApprovalWorkflow.record_id == record_id, ApprovalWorkflow.tenant_id == tenant_id)
            .first()
        )
        if workflow is not None:
            return workflow.related_table, self.services[workflow.related_table]

        for table, service in self.services.items():
            if self.db.query(service.model.id).filter(
                service.model.id == record_id,
                service.model.tenant_id == tenant_id,
            ).first():
                return table, service
        raise NotFoundError("Approval", record_id)

    def approve(self, *, user: User, record_id: str, comments: Optional[str] = None):
        table, service = self.resolve(tenant_id=user.company_id, record_id=record_id)
        return table, service.approve(user=user, record_id=record_id, comments=comments)

    def reject(self, *, user: User, record_id: str, comments: Optional[str]):
        table, service = self.resolve(tenant_id=user.company_id, record_id=record_id)
        return table, service.reject(user=user, record_id=record_id, comments=comments)
