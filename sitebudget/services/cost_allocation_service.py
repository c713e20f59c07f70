# sitebudget/services/cost_allocation_service.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from sitebudget.db.enums import (
    ApprovalStatus,
    AuditAction,
    LineItemCategory,
    WorkflowTable,
)
from sitebudget.errors import BusinessRuleError, InputError, NotFoundError
from sitebudget.logger import get_logger
from sitebudget.models.catalog import LineItem
from sitebudget.models.change_order import ChangeOrder
from sitebudget.models.cost_allocation import CostAllocation, MaterialAllocation
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.approvable_service import ApprovableService
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_alert_service import BudgetAlertService
from sitebudget.services.budget_impact import (
    ZERO,
    calc_material_total,
    calc_total_cost,
    determine_cost_allocation_status,
    to_decimal,
)
from sitebudget.services.catalog_service import CatalogService
from sitebudget.services.permission_service import PermissionService

logger = get_logger(__name__)

CENT = Decimal("0.01")


class CostAllocationService(ApprovableService):
    """
    Costs (labour + materials) booked against a project's line item.

    Invariants:
    - material_cost == Σ quantity × unit_price of its material rows
    - total_cost == labour_cost + material_cost
    - zero labour with no materials is rejected
    - every stored figure is exact in cents; finer inputs are rejected, never rounded
    - only approved allocations count in Project.consumed_amount
    """

    model = CostAllocation
    workflow_table = WorkflowTable.cost_allocations
    entity_type = "cost_allocation"

    def __init__(
        self,
        db: Session,
        audit_log_service: AuditLogService,
        permission_service: PermissionService,
        catalog_service: CatalogService,
        budget_alert_service: BudgetAlertService,
    ):
        super().__init__(db, audit_log_service, permission_service)
        self.catalog_service = catalog_service
        self.budget_alert_service = budget_alert_service

    # =========
    # Create
    # =========
    def create(
        self,
        *,
        user: User,
        project: Project,
        line_item_id: str,
        labour_cost,
        material_allocations: Iterable[Mapping[str, Any]] = (),
        quantity=None,
        change_order_id: Optional[str] = None,
        date_incurred: Optional[datetime] = None,
    ) -> CostAllocation:
        '''
        Book a cost allocation.

        :param labour_cost: >= 0
        :param material_allocations: rows {"material_id", "quantity" > 0, "unit_price" > 0}
        :param quantity: booked quantity, defaults to 1; unit_cost = total_cost / quantity
        :raises BusinessRuleError: labour_cost == 0 and no material rows
        :raises InputError: negative labour, non-positive quantity or unit price,
            a figure (or a quantity × unit price product) finer than a cent
        :raises PermissionDeniedError: neither admin nor team leader assigned to the project
        '''
        self.permission_service.require_project_mutation(user, project)

        labour = self._cents(self._decimal(labour_cost, "labourCost"), "labourCost")
        if labour < ZERO:
            raise InputError("Labour cost can not be negative", details={"field": "labourCost"})

        rows = []
        for index, row in enumerate(material_allocations):
            quantity_field = f"materialAllocations[{index}].quantity"
            price_field = f"materialAllocations[{index}].unitPrice"
            row_quantity = self._cents(self._decimal(row.get("quantity"), quantity_field), quantity_field)
            unit_price = self._cents(self._decimal(row.get("unit_price"), price_field), price_field)
            if row_quantity <= ZERO:
                raise InputError("Material quantity must be greater than zero", details={"field": quantity_field})
            if unit_price <= ZERO:
                raise InputError("Material unit price must be greater than zero", details={"field": price_field})
            self._cents(
                row_quantity * unit_price,
                quantity_field,
                message=f"{quantity_field} x {price_field} must come to whole cents",
            )
            material = self.catalog_service.get_material(tenant_id=project.tenant_id, material_id=row.get("material_id"))
            rows.append({"material_id": material.id, "quantity": row_quantity, "unit_price": unit_price})

        if labour == ZERO and not rows:
            raise BusinessRuleError(
                "A cost allocation needs a labour cost or at least one material",
                details={"fields": ["labourCost", "materialAllocations"]},
            )

        line_item = self.catalog_service.get_line_item(tenant_id=project.tenant_id, line_item_id=line_item_id)
        if change_order_id:
            self._check_change_order(project, change_order_id)

        booked_quantity = Decimal("1") if quantity is None else self._cents(self._decimal(quantity, "quantity"), "quantity")
        if booked_quantity <= ZERO:
            raise InputError("Quantity must be greater than zero", details={"field": "quantity"})

        material_cost = calc_material_total(rows)
        total_cost = calc_total_cost(labour, material_cost)
        remaining = to_decimal(project.budget) - to_decimal(project.consumed_amount)
        status = ApprovalStatus(determine_cost_allocation_status(total_cost, remaining))

        allocation = CostAllocation(
            id=str(uuid4()),
            project_id=project.id,
            line_item_id=line_item.id,
            change_order_id=change_order_id,
            tenant_id=project.tenant_id,
            entered_by=user.id,
            labour_cost=labour,
            material_cost=material_cost,
            quantity=booked_quantity,
            unit_cost=(total_cost / booked_quantity).quantize(Decimal("0.01")),
            total_cost=total_cost,
            status=status,
            date_incurred=date_incurred or datetime.now(),
        )
        for row in rows:
            allocation.material_allocations.append(MaterialAllocation(
                id=str(uuid4()),
                material_id=row["material_id"],
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                total=row["quantity"] * row["unit_price"],
                tenant_id=project.tenant_id,
            ))
        self.db.add(allocation)
        self.db.flush()

        if status == ApprovalStatus.approved:
            project = self.apply_project_delta(project_id=project.id, tenant_id=project.tenant_id, consumed=total_cost)
        else:
            self._open_workflow(allocation, status)

        self.audit_log_service.record(
            action=AuditAction.cost_allocated,
            entity_type=self.entity_type,
            entity_id=allocation.id,
            user_id=user.id,
            tenant_id=project.tenant_id,
            project_id=project.id,
            amount=total_cost,
            details={
                "labour_cost": labour,
                "material_cost": material_cost,
                "materials": len(rows),
                "status": status,
                "remaining_budget": remaining,
            },
        )
        logger.info(f"Cost allocation {allocation.id} of {total_cost} on project {project.id} ({status.value})")

        self.budget_alert_service.check_and_create_alerts(project, triggered_by=user.id)
        return allocation

    def _decimal(self, value, field: str) -> Decimal:
        if value is None or (isinstance(value, str) and not value.strip()):
            return ZERO
        try:
            return to_decimal(value)
        except ValueError:
            raise InputError(f"{field} must be a valid number", details={"field": field})

    @staticmethod
    def _cents(value: Decimal, field: str, message: Optional[str] = None) -> Decimal:
        # columns are Numeric(15, 2)
        if value != value.quantize(CENT):
            raise InputError(message or f"{field} can not have more than 2 decimal places", details={"field": field})
        return value

    def _check_change_order(self, project: Project, change_order_id: str) -> None:
        exists = (
            self.db.query(ChangeOrder.id)
            .filter(
                ChangeOrder.id == change_order_id,
                ChangeOrder.tenant_id == project.tenant_id,
                ChangeOrder.project_id == project.id,
            )
            .first()
        )
        if not exists:
            raise NotFoundError("Change order", change_order_id)

    # =========
    # Approval hooks
    # =========
    def _check_decider(self, user: User, record: CostAllocation) -> None:
        self.permission_service.require_project_mutation(user, self._get_project(record))

    def _decision_values(self, user: User, status: ApprovalStatus, comments: Optional[str]) -> Dict[str, Any]:
        return {"status": status, "updated_at": datetime.now()}

    def _on_approved(self, record: CostAllocation, user: User) -> None:
        project = self.apply_project_delta(
            project_id=record.project_id,
            tenant_id=record.tenant_id,
            consumed=record.total_cost,
        )
        self.budget_alert_service.check_and_create_alerts(project, triggered_by=user.id)

    # =========
    # Reads
    # =========
    def list_allocations(
        self,
        *,
        tenant_id: str,
        project_ids: Optional[List[str]] = None,
        project_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        categories: Optional[List[LineItemCategory]] = None,
    ) -> List[CostAllocation]:
        '''
        :param project_ids: visibility restriction, None means the whole tenant
        :param categories: keep allocations whose line item is in one of these categories
        '''
        query = (
            self.db.query(CostAllocation)
            .options(selectinload(CostAllocation.material_allocations))
            .filter(CostAllocation.tenant_id == tenant_id)
        )
        if project_ids is not None:
            query = query.filter(CostAllocation.project_id.in_(project_ids))
        if project_id:
            query = query.filter(CostAllocation.project_id == project_id)
        if status:
            query = query.filter(CostAllocation.status == status)
        if start_date:
            query = query.filter(CostAllocation.date_incurred >= start_date)
        if end_date:
            query = query.filter(CostAllocation.date_incurred <= end_date)
        if categories:
            query = query.join(LineItem, LineItem.id == CostAllocation.line_item_id).filter(
                LineItem.category.in_(categories)
            )
        return query.order_by(desc(CostAllocation.date_incurred)).all()
