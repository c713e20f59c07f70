from typing import Dict, Iterable, List, Optional
from decimal import Decimal
import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from sitebudget.db.enums import ApprovalStatus, TransactionType
from sitebudget.models.catalog import LineItem
from sitebudget.models.cost_allocation import CostAllocation
from sitebudget.models.project import Project
from sitebudget.models.transaction import Transaction
from sitebudget.services.budget_impact import (
    ZERO,
    calc_budget_variance,
    percent_of,
    to_decimal,
    utilization_state,
)


def _decimal_sum(values: Iterable) -> Decimal:
    # pandas would go through float on object columns; keep cents exact
    return sum((to_decimal(v) for v in values), ZERO)


class AnalyticsService:
    """
    Read-only aggregates over transactions and cost allocations.

    totalSpent = Σ expense transactions + Σ approved cost allocations.
    budgetUtilization is a percentage, 0 when the budget is <= 0.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========
    # Raw sums
    # =========
    def _transaction_sums(self, tenant_id: str, project_ids: Optional[List[str]]) -> Dict[str, Dict[TransactionType, Decimal]]:
        query = (
            self.db.query(Transaction.project_id, Transaction.type, func.sum(Transaction.amount), func.count(Transaction.id))
            .filter(Transaction.tenant_id == tenant_id)
            .group_by(Transaction.project_id, Transaction.type)
        )
        if project_ids is not None:
            query = query.filter(Transaction.project_id.in_(project_ids))
        sums: Dict[str, Dict] = {}
        for project_id, tx_type, amount, count in query.all():
            bucket = sums.setdefault(project_id, {"count": 0})
            bucket[tx_type] = to_decimal(amount or 0)
            bucket["count"] += count
        return sums

    def _approved_allocation_sums(self, tenant_id: str, project_ids: Optional[List[str]]) -> Dict[str, Decimal]:
        query = (
            self.db.query(CostAllocation.project_id, func.sum(CostAllocation.total_cost))
            .filter(
                CostAllocation.tenant_id == tenant_id,
                CostAllocation.status == ApprovalStatus.approved,
            )
            .group_by(CostAllocation.project_id)
        )
        if project_ids is not None:
            query = query.filter(CostAllocation.project_id.in_(project_ids))
        return {project_id: to_decimal(total or 0) for project_id, total in query.all()}

    def _projects(self, tenant_id: str, project_ids: Optional[List[str]]) -> List[Project]:
        query = self.db.query(Project).filter(Project.tenant_id == tenant_id)
        if project_ids is not None:
            query = query.filter(Project.id.in_(project_ids))
        return query.order_by(Project.created_at).all()

    @staticmethod
    def _summarize(total_budget: Decimal, total_spent: Decimal, total_revenue: Decimal) -> Dict:
        utilization = percent_of(total_spent, total_budget)
        return {
            "total_budget": total_budget,
            "total_spent": total_spent,
            "total_revenue": total_revenue,
            "net_profit": total_revenue - total_spent,
            "budget_utilization": utilization,
            "utilization_state": utilization_state(utilization).value,
        }

    @staticmethod
    def _project_revenue(project: Project, tx: Dict) -> Decimal:
        # revenue transactions win; the project's contract revenue is the fallback
        if TransactionType.revenue in tx:
            return tx[TransactionType.revenue]
        return to_decimal(project.revenue or 0)

    # =========
    # Views
    # =========
    def tenant_analytics(self, *, tenant_id: str, project_ids: Optional[List[str]] = None) -> Dict:
        '''
        :param project_ids: visibility restriction, None means the whole tenant
        '''
        projects = self._projects(tenant_id, project_ids)
        transactions = self._transaction_sums(tenant_id, project_ids)
        allocations = self._approved_allocation_sums(tenant_id, project_ids)

        total_budget = ZERO
        total_spent = ZERO
        total_revenue = ZERO
        active = 0
        for project in projects:
            tx = transactions.get(project.id, {})
            if project.status == "active":
                active += 1
                total_budget += to_decimal(project.budget)
            total_spent += tx.get(TransactionType.expense, ZERO) + allocations.get(project.id, ZERO)
            total_revenue += self._project_revenue(project, tx)

        result = self._summarize(total_budget, total_spent, total_revenue)
        result["active_projects"] = active
        result["total_projects"] = len(projects)
        return result

    def project_analytics(self, *, project: Project) -> Dict:
        tx = self._transaction_sums(project.tenant_id, [project.id]).get(project.id, {"count": 0})
        allocated = self._approved_allocation_sums(project.tenant_id, [project.id]).get(project.id, ZERO)

        total_spent = tx.get(TransactionType.expense, ZERO) + allocated
        result = self._summarize(to_decimal(project.budget), total_spent, self._project_revenue(project, tx))
        result["project_id"] = project.id
        result["consumed_amount"] = to_decimal(project.consumed_amount)
        result["remaining_budget"] = to_decimal(project.budget) - to_decimal(project.consumed_amount)
        result["transaction_count"] = tx.get("count", 0)
        return result

    def budget_summary(self, *, tenant_id: str, project_ids: Optional[List[str]] = None) -> List[Dict]:
        '''
        One row per project: budget against approved spend, with the variance status.
        '''
        projects = self._projects(tenant_id, project_ids)
        if not projects:
            return []
        df = self._allocations_frame(tenant_id, project_ids, approved_only=True)
        spent_by_project = (
            df.groupby("project_id")["total_cost"].agg(_decimal_sum).to_dict() if not df.empty else {}
        )
        count_by_project = df.groupby("project_id").size().to_dict() if not df.empty else {}

        rows = []
        for project in projects:
            spent = spent_by_project.get(project.id, ZERO)
            variance = calc_budget_variance(project.budget, spent)
            rows.append({
                "project_id": project.id,
                "project_title": project.title,
                "budget": to_decimal(project.budget),
                "spent": spent,
                "remaining": variance.remaining_budget,
                "spent_percentage": variance.spent_percentage,
                "status": variance.status.value,
                "is_over_budget": variance.is_over_budget,
                "allocation_count": int(count_by_project.get(project.id, 0)),
            })
        return rows

    def category_spending(self, *, tenant_id: str, project_ids: Optional[List[str]] = None) -> List[Dict]:
        '''
        Spend per line item category: approved cost allocations plus expense transactions.
        '''
        frames = []
        allocations = self._allocations_frame(tenant_id, project_ids, approved_only=True)
        if not allocations.empty:
            frames.append(allocations[["category", "total_cost"]].rename(columns={"total_cost": "amount"}))

        tx_query = (
            self.db.query(Transaction.category, Transaction.amount)
            .filter(Transaction.tenant_id == tenant_id, Transaction.type == TransactionType.expense)
        )
        if project_ids is not None:
            tx_query = tx_query.filter(Transaction.project_id.in_(project_ids))
        tx_rows = [(category.value, amount) for category, amount in tx_query.all()]
        if tx_rows:
            frames.append(pd.DataFrame.from_records(tx_rows, columns=["category", "amount"]))

        if not frames:
            return []
        df = pd.concat(frames, ignore_index=True)
        grouped = df.groupby("category")["amount"].agg(["count", _decimal_sum])
        grand_total = _decimal_sum(grouped["_decimal_sum"])

        rows = [
            {
                "category": category,
                "amount": row["_decimal_sum"],
                "count": int(row["count"]),
                "percentage": percent_of(row["_decimal_sum"], grand_total),
            }
            for category, row in grouped.iterrows()
        ]
        rows.sort(key=lambda r: r["amount"], reverse=True)
        return rows

    def labour_material_split(self, *, tenant_id: str, project_ids: Optional[List[str]] = None) -> Dict:
        '''
        Labour vs material share of approved cost allocations, overall and per category.
        '''
        df = self._allocations_frame(tenant_id, project_ids, approved_only=True)
        if df.empty:
            return {
                "labour": ZERO,
                "material": ZERO,
                "total": ZERO,
                "labour_percentage": ZERO,
                "material_percentage": ZERO,
                "by_category": [],
            }

        labour = _decimal_sum(df["labour_cost"])
        material = _decimal_sum(df["material_cost"])
        total = labour + material

        by_category = []
        for category, group in df.groupby("category"):
            cat_labour = _decimal_sum(group["labour_cost"])
            cat_material = _decimal_sum(group["material_cost"])
            by_category.append({
                "category": category,
                "labour": cat_labour,
                "material": cat_material,
                "total": cat_labour + cat_material,
            })

        return {
            "labour": labour,
            "material": material,
            "total": total,
            "labour_percentage": percent_of(labour, total),
            "material_percentage": percent_of(material, total),
            "by_category": by_category,
        }

    def _allocations_frame(self, tenant_id: str, project_ids: Optional[List[str]], *, approved_only: bool) -> pd.DataFrame:
        query = (
            self.db.query(
                CostAllocation.project_id,
                LineItem.category,
                CostAllocation.labour_cost,
                CostAllocation.material_cost,
                CostAllocation.total_cost,
            )
            .join(LineItem, LineItem.id == CostAllocation.line_item_id)
            .filter(CostAllocation.tenant_id == tenant_id)
        )
        if approved_only:
            query = query.filter(CostAllocation.status == ApprovalStatus.approved)
        if project_ids is not None:
            query = query.filter(CostAllocation.project_id.in_(project_ids))
        records = [
            (project_id, category.value, labour, material, total)
            for project_id, category, labour, material, total in query.all()
        ]
        return pd.DataFrame.from_records(
            records,
            columns=["project_id", "category", "labour_cost", "material_cost", "total_cost"],
        )
