from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sitebudget.models.budget_alert import BudgetAlert
from sitebudget.models.cost_allocation import CostAllocation, MaterialAllocation
from sitebudget.models.project import Project
from sitebudget.models.transaction import Transaction
from sitebudget.presentation.currency import money
from sitebudget.schemas.dto.base_dto import BaseDTO


class MoneyDTO(BaseDTO):
    amount: str
    currency: str

    @classmethod
    def of(cls, amount, currency: str) -> "MoneyDTO":
        return cls(**money(amount if amount is not None else 0, currency))


class ProjectDTO(BaseDTO):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    manager_id: str
    start_date: datetime
    end_date: datetime
    budget: MoneyDTO
    consumed_amount: MoneyDTO
    remaining_budget: MoneyDTO
    revenue: MoneyDTO
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_model(cls, project: Project, currency: str = "NGN") -> "ProjectDTO":
        return cls(
            id=project.id,
            title=project.title,
            description=project.description,
            status=project.status,
            manager_id=project.manager_id,
            start_date=project.start_date,
            end_date=project.end_date,
            budget=MoneyDTO.of(project.budget, currency),
            consumed_amount=MoneyDTO.of(project.consumed_amount, currency),
            remaining_budget=MoneyDTO.of(project.budget - project.consumed_amount, currency),
            revenue=MoneyDTO.of(project.revenue, currency),
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class ProposalDTO(BaseDTO):
    """
    Budget amendment or change order row, with the listing context joined in.
    """
    id: str
    project_id: str
    project_title: Optional[str] = None
    status: str
    amount: MoneyDTO
    proposed_by: str
    proposer_name: Optional[str] = None
    approved_by: Optional[str] = None
    approver_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    review_comments: Optional[str] = None
    is_significant: bool = False
    created_at: datetime
    updated_at: datetime

    # amendments carry reason / amountAdded, change orders description / costImpact
    reason: Optional[str] = None
    amount_added: Optional[MoneyDTO] = None
    description: Optional[str] = None
    cost_impact: Optional[MoneyDTO] = None

    @classmethod
    def from_orm_model(cls, record, currency: str = "NGN", **context) -> "ProposalDTO":
        '''
        :param context: project_title / proposer_name / approver_name / is_significant
        '''
        amount = getattr(record, "amount_added", None)
        if amount is None:
            amount = getattr(record, "cost_impact", None)
        tagged = MoneyDTO.of(amount, currency)
        is_amendment = hasattr(record, "amount_added")
        return cls(
            id=record.id,
            project_id=record.project_id,
            status=record.status.value,
            amount=tagged,
            proposed_by=record.proposed_by,
            approved_by=record.approved_by,
            approved_at=record.approved_at,
            review_comments=record.review_comments,
            created_at=record.created_at,
            updated_at=record.updated_at,
            reason=record.reason if is_amendment else None,
            amount_added=tagged if is_amendment else None,
            description=None if is_amendment else record.description,
            cost_impact=None if is_amendment else tagged,
            **context,
        )


class MaterialAllocationDTO(BaseDTO):
    id: str
    material_id: str
    quantity: Decimal
    unit_price: MoneyDTO
    total: MoneyDTO

    @classmethod
    def from_orm_model(cls, row: MaterialAllocation, currency: str = "NGN") -> "MaterialAllocationDTO":
        return cls(
            id=row.id,
            material_id=row.material_id,
            quantity=row.quantity,
            unit_price=MoneyDTO.of(row.unit_price, currency),
            total=MoneyDTO.of(row.total, currency),
        )


class CostAllocationDTO(BaseDTO):
    id: str
    project_id: str
    line_item_id: str
    change_order_id: Optional[str] = None
    entered_by: str
    labour_cost: MoneyDTO
    material_cost: MoneyDTO
    total_cost: MoneyDTO
    quantity: Decimal
    unit_cost: Optional[MoneyDTO] = None
    status: str
    date_incurred: datetime
    material_allocations: List[MaterialAllocationDTO] = []
    created_at: datetime

    @classmethod
    def from_orm_model(cls, allocation: CostAllocation, currency: str = "NGN") -> "CostAllocationDTO":
        return cls(
            id=allocation.id,
            project_id=allocation.project_id,
            line_item_id=allocation.line_item_id,
            change_order_id=allocation.change_order_id,
            entered_by=allocation.entered_by,
            labour_cost=MoneyDTO.of(allocation.labour_cost, currency),
            material_cost=MoneyDTO.of(allocation.material_cost, currency),
            total_cost=MoneyDTO.of(allocation.total_cost, currency),
            quantity=allocation.quantity,
            unit_cost=MoneyDTO.of(allocation.unit_cost, currency) if allocation.unit_cost is not None else None,
            status=allocation.status.value,
            date_incurred=allocation.date_incurred,
            material_allocations=[
                MaterialAllocationDTO.from_orm_model(row, currency) for row in allocation.material_allocations
            ],
            created_at=allocation.created_at,
        )


class TransactionDTO(BaseDTO):
    id: str
    project_id: str
    user_id: str
    type: str
    amount: MoneyDTO
    category: str
    description: Optional[str] = None
    status: str
    created_at: datetime

    @classmethod
    def from_orm_model(cls, transaction: Transaction, currency: str = "NGN") -> "TransactionDTO":
        return cls(
            id=transaction.id,
            project_id=transaction.project_id,
            user_id=transaction.user_id,
            type=transaction.type.value,
            amount=MoneyDTO.of(transaction.amount, currency),
            category=transaction.category.value,
            description=transaction.description,
            status=transaction.status,
            created_at=transaction.created_at,
        )


class BudgetAlertDTO(BaseDTO):
    id: str
    project_id: str
    type: str
    status: str
    severity: str
    message: str
    spent_percentage: Optional[Decimal] = None
    remaining_budget: Optional[MoneyDTO] = None
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_orm_model(cls, alert: BudgetAlert, currency: str = "NGN") -> "BudgetAlertDTO":
        return cls(
            id=alert.id,
            project_id=alert.project_id,
            type=alert.type.value,
            status=alert.status.value,
            severity=alert.severity,
            message=alert.message,
            spent_percentage=alert.spent_percentage,
            remaining_budget=(
                MoneyDTO.of(alert.remaining_budget, currency) if alert.remaining_budget is not None else None
            ),
            acknowledged_by=alert.acknowledged_by,
            acknowledged_at=alert.acknowledged_at,
            created_at=alert.created_at,
        )


class PendingApprovalDTO(BaseDTO):
    kind: str
    record_id: str
    project_id: str
    project_title: Optional[str] = None
    amount: MoneyDTO
    proposed_by: str
    proposer_name: Optional[str] = None
    summary: Optional[str] = None
    status: str
    created_at: datetime

    @classmethod
    def from_orm_model(cls, row: Dict[str, Any], currency: str = "NGN") -> "PendingApprovalDTO":
        return cls(
            kind=row["kind"],
            record_id=row["record_id"],
            project_id=row["project_id"],
            project_title=row.get("project_title"),
            amount=MoneyDTO.of(row["amount"], currency),
            proposed_by=row["proposed_by"],
            proposer_name=row.get("proposer_name"),
            summary=row.get("summary"),
            status=row["status"].value,
            created_at=row["created_at"],
        )


# =========
# Analytics
# =========
class AnalyticsDTO(BaseDTO):
    total_budget: MoneyDTO
    total_spent: MoneyDTO
    total_revenue: MoneyDTO
    net_profit: MoneyDTO
    budget_utilization: Decimal
    utilization_state: str
    active_projects: Optional[int] = None
    total_projects: Optional[int] = None
    project_id: Optional[str] = None
    consumed_amount: Optional[MoneyDTO] = None
    remaining_budget: Optional[MoneyDTO] = None
    transaction_count: Optional[int] = None

    @classmethod
    def from_orm_model(cls, figures: Dict[str, Any], currency: str = "NGN") -> "AnalyticsDTO":
        money_fields = {
            "total_budget", "total_spent", "total_revenue", "net_profit",
            "consumed_amount", "remaining_budget",
        }
        return cls(**{
            key: MoneyDTO.of(value, currency) if key in money_fields else value
            for key, value in figures.items()
        })


class BudgetSummaryRowDTO(BaseDTO):
    project_id: str
    project_title: str
    budget: MoneyDTO
    spent: MoneyDTO
    remaining: MoneyDTO
    spent_percentage: Decimal
    status: str
    is_over_budget: bool
    allocation_count: int

    @classmethod
    def from_orm_model(cls, row: Dict[str, Any], currency: str = "NGN") -> "BudgetSummaryRowDTO":
        return cls(**{
            **row,
            "budget": MoneyDTO.of(row["budget"], currency),
            "spent": MoneyDTO.of(row["spent"], currency),
            "remaining": MoneyDTO.of(row["remaining"], currency),
        })


class CategorySpendingDTO(BaseDTO):
    category: str
    amount: MoneyDTO
    count: int
    percentage: Decimal

    @classmethod
    def from_orm_model(cls, row: Dict[str, Any], currency: str = "NGN") -> "CategorySpendingDTO":
        return cls(**{**row, "amount": MoneyDTO.of(row["amount"], currency)})


class CategorySplitDTO(BaseDTO):
    category: str
    labour: MoneyDTO
    material: MoneyDTO
    total: MoneyDTO


class LabourMaterialSplitDTO(BaseDTO):
    labour: MoneyDTO
    material: MoneyDTO
    total: MoneyDTO
    labour_percentage: Decimal
    material_percentage: Decimal
    by_category: List[CategorySplitDTO] = []

    @classmethod
    def from_orm_model(cls, split: Dict[str, Any], currency: str = "NGN") -> "LabourMaterialSplitDTO":
        return cls(
            labour=MoneyDTO.of(split["labour"], currency),
            material=MoneyDTO.of(split["material"], currency),
            total=MoneyDTO.of(split["total"], currency),
            labour_percentage=split["labour_percentage"],
            material_percentage=split["material_percentage"],
            by_category=[
                CategorySplitDTO(
                    category=row["category"],
                    labour=MoneyDTO.of(row["labour"], currency),
                    material=MoneyDTO.of(row["material"], currency),
                    total=MoneyDTO.of(row["total"], currency),
                )
                for row in split["by_category"]
            ],
        )
