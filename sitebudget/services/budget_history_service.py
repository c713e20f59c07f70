# sitebudget/services/budget_history_service.py
"""
Budget history is derived, never persisted: it is rebuilt from projects,
amendments and change orders on every query.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from sitebudget.db.enums import ApprovalStatus, HistoryEntryType
from sitebudget.models.budget_amendment import BudgetAmendment
from sitebudget.models.change_order import ChangeOrder
from sitebudget.models.project import Project
from sitebudget.schemas.dto.base_dto import BaseDTO
from sitebudget.services.budget_impact import ZERO, to_decimal


class BudgetHistoryEntry(BaseDTO):
    id: str
    project_id: str
    project_title: Optional[str] = None
    type: HistoryEntryType
    amount: Decimal
    status: ApprovalStatus
    description: Optional[str] = None
    proposed_by: Optional[str] = None
    approved_by: Optional[str] = None
    created_at: datetime
    running_total: Decimal = ZERO


def reconstruct_budget_history(
    projects: Iterable,
    amendments: Iterable,
    change_orders: Iterable,
) -> List[BudgetHistoryEntry]:
    '''
    Merge initial budgets, amendments and non-zero change orders into one
    timeline with a running total per project.

    Works on any objects exposing the ORM attribute names, so it can be fed
    rows straight from the session or plain fixtures. Pure: the inputs are not
    touched and the same inputs always give the same running totals.

    :param projects: objects with id, title, initial_budget, created_at
    :param amendments: objects with id, project_id, amount_added, reason, status, created_at
    :param change_orders: objects with id, project_id, cost_impact, description, status, created_at
    :return: entries sorted by created_at ascending
    '''
    entries: List[BudgetHistoryEntry] = []
    titles: Dict[str, str] = {}

    for project in projects:
        titles[project.id] = project.title
        entries.append(BudgetHistoryEntry(
            id=f"initial-{project.id}",
            project_id=project.id,
            project_title=project.title,
            type=HistoryEntryType.initial,
            amount=to_decimal(project.initial_budget),
            status=ApprovalStatus.approved,
            description="Initial budget",
            created_at=project.created_at,
        ))

    for amendment in amendments:
        entries.append(BudgetHistoryEntry(
            id=amendment.id,
            project_id=amendment.project_id,
            project_title=titles.get(amendment.project_id),
            type=HistoryEntryType.amendment,
            amount=to_decimal(amendment.amount_added),
            status=amendment.status,
            description=amendment.reason,
            proposed_by=amendment.proposed_by,
            approved_by=amendment.approved_by,
            created_at=amendment.created_at,
        ))

    for change_order in change_orders:
        cost_impact = to_decimal(change_order.cost_impact)
        if cost_impact == ZERO:
            continue  # informational only
        entries.append(BudgetHistoryEntry(
            id=change_order.id,
            project_id=change_order.project_id,
            project_title=titles.get(change_order.project_id),
            type=HistoryEntryType.change_order,
            amount=cost_impact,
            status=change_order.status,
            description=change_order.description,
            proposed_by=change_order.proposed_by,
            approved_by=change_order.approved_by,
            created_at=change_order.created_at,
        ))

    # sorted() is stable: equal timestamps keep initial / amendment / change order order
    entries = sorted(entries, key=lambda entry: _sort_key(entry.created_at))

    running: Dict[str, Decimal] = {}
    for entry in entries:
        if entry.type == HistoryEntryType.initial:
            running[entry.project_id] = entry.amount
        elif entry.status == ApprovalStatus.approved:
            running[entry.project_id] = running.get(entry.project_id, ZERO) + entry.amount
        entry.running_total = running.get(entry.project_id, ZERO)

    return entries


def _sort_key(moment: datetime) -> float:
    # sqlite hands back naive datetimes, postgres aware ones; compare on the epoch
    return moment.timestamp()


def filter_history(
    entries: Iterable[BudgetHistoryEntry],
    *,
    type: Optional[HistoryEntryType] = None,
    status: Optional[ApprovalStatus] = None,
) -> List[BudgetHistoryEntry]:
    """Select entries by type / status. Running totals are left exactly as computed."""
    return [
        entry for entry in entries
        if (type is None or entry.type == type)
        and (status is None or entry.status == status)
    ]


class BudgetHistoryService:
    """
    Loads the tenant's rows and runs the reconstruction over them.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_history(
        self,
        *,
        tenant_id: str,
        project_ids: Optional[List[str]] = None,
        type: Optional[HistoryEntryType] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> List[BudgetHistoryEntry]:
        '''
        :param project_ids: restrict to these projects, None means every project of the tenant
        '''
        project_query = self.db.query(Project).filter(Project.tenant_id == tenant_id)
        amendment_query = self.db.query(BudgetAmendment).filter(BudgetAmendment.tenant_id == tenant_id)
        change_order_query = self.db.query(ChangeOrder).filter(ChangeOrder.tenant_id == tenant_id)

        if project_ids is not None:
            project_query = project_query.filter(Project.id.in_(project_ids))
            amendment_query = amendment_query.filter(BudgetAmendment.project_id.in_(project_ids))
            change_order_query = change_order_query.filter(ChangeOrder.project_id.in_(project_ids))

        entries = reconstruct_budget_history(
            project_query.order_by(Project.created_at).all(),
            amendment_query.order_by(BudgetAmendment.created_at).all(),
            change_order_query.order_by(ChangeOrder.created_at).all(),
        )
        return filter_history(entries, type=type, status=status)
