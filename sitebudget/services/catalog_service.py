from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction, LineItemCategory
from sitebudget.errors import DuplicateError, InputError, NotFoundError
from sitebudget.models.catalog import LineItem, Material
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_impact import ZERO


class CatalogService:
    """
    Per-tenant line items (what costs are booked against) and priced materials.
    Names are unique per tenant, case-insensitively.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    # ======================================================
    # Line items
    # ======================================================
    def list_line_items(self, *, tenant_id: str, category: Optional[LineItemCategory] = None) -> List[LineItem]:
        query = self.db.query(LineItem).filter(LineItem.tenant_id == tenant_id)
        if category:
            query = query.filter(LineItem.category == category)
        return query.order_by(LineItem.category, LineItem.name).all()

    def get_line_item(self, *, tenant_id: str, line_item_id: str) -> LineItem:
        line_item = (
            self.db.query(LineItem)
            .filter(LineItem.id == line_item_id, LineItem.tenant_id == tenant_id)
            .first()
        )
        if not line_item:
            raise NotFoundError("Line item", line_item_id)
        return line_item

    def create_line_item(
        self,
        *,
        tenant_id: str,
        name: str,
        category: LineItemCategory,
        description: Optional[str],
        operator_id: str,
    ) -> LineItem:
        self._ensure_unique(LineItem, tenant_id, name)
        line_item = LineItem(
            id=str(uuid4()),
            tenant_id=tenant_id,
            name=name.strip(),
            category=category,
            description=description,
        )
        self.db.add(line_item)
        self.db.flush()
        self.audit_log_service.record(
            action=AuditAction.line_item_created,
            entity_type="line_item",
            entity_id=line_item.id,
            user_id=operator_id,
            tenant_id=tenant_id,
            details={"name": line_item.name, "category": category},
        )
        return line_item

    def update_line_item(self, *, line_item: LineItem, changes: Dict, operator_id: str) -> LineItem:
        if changes.get("name") and changes["name"].strip().lower() != line_item.name.lower():
            self._ensure_unique(LineItem, line_item.tenant_id, changes["name"])
        after = {}
        for field in ("name", "category", "description"):
            if changes.get(field) is not None and getattr(line_item, field) != changes[field]:
                after[field] = changes[field]
                setattr(line_item, field, changes[field])
        if after:
            self.audit_log_service.record(
                action=AuditAction.line_item_updated,
                entity_type="line_item",
                entity_id=line_item.id,
                user_id=operator_id,
                tenant_id=line_item.tenant_id,
                details={"after": after},
            )
        return line_item

    # ======================================================
    # Materials
    # ======================================================
    def list_materials(self, *, tenant_id: str) -> List[Material]:
        return (
            self.db.query(Material)
            .filter(Material.tenant_id == tenant_id)
            .order_by(Material.name)
            .all()
        )

    def get_material(self, *, tenant_id: str, material_id: str) -> Material:
        material = (
            self.db.query(Material)
            .filter(Material.id == material_id, Material.tenant_id == tenant_id)
            .first()
        )
        if not material:
            raise NotFoundError("Material", material_id)
        return material

    def create_material(
        self,
        *,
        tenant_id: str,
        name: str,
        unit: str,
        current_unit_price: Decimal,
        supplier: Optional[str],
        operator_id: str,
    ) -> Material:
        if current_unit_price <= ZERO:
            raise InputError("Unit price must be greater than zero", details={"field": "currentUnitPrice"})
        self._ensure_unique(Material, tenant_id, name)
        material = Material(
            id=str(uuid4()),
            tenant_id=tenant_id,
            name=name.strip(),
            unit=unit.strip(),
            current_unit_price=current_unit_price,
            supplier=supplier,
        )
        self.db.add(material)
        self.db.flush()
        self.audit_log_service.record(
            action=AuditAction.material_added,
            entity_type="material",
            entity_id=material.id,
            user_id=operator_id,
            tenant_id=tenant_id,
            amount=current_unit_price,
            details={"name": material.name, "unit": material.unit},
        )
        return material

    def update_material(self, *, material: Material, changes: Dict, operator_id: str) -> Material:
        if changes.get("current_unit_price") is not None and changes["current_unit_price"] <= ZERO:
            raise InputError("Unit price must be greater than zero", details={"field": "currentUnitPrice"})
        if changes.get("name") and changes["name"].strip().lower() != material.name.lower():
            self._ensure_unique(Material, material.tenant_id, changes["name"])
        before, after = {}, {}
        for field in ("name", "unit", "current_unit_price", "supplier"):
            if changes.get(field) is not None and getattr(material, field) != changes[field]:
                before[field] = getattr(material, field)
                after[field] = changes[field]
                setattr(material, field, changes[field])
        if after:
            self.audit_log_service.record(
                action=AuditAction.material_updated,
                entity_type="material",
                entity_id=material.id,
                user_id=operator_id,
                tenant_id=material.tenant_id,
                details={"before": before, "after": after},
            )
        return material

    def _ensure_unique(self, model, tenant_id: str, name: str) -> None:
        exists = (
            self.db.query(model.id)
            .filter(model.tenant_id == tenant_id, func.lower(model.name) == name.strip().lower())
            .first()
        )
        if exists:
            raise DuplicateError(f"'{name.strip()}' already exists", details={"field": "name"})
