# sitebudget/models/cost_allocation.py
from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    Enum,
    ForeignKey,
)
from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from sitebudget.db.base import Base
from sitebudget.db.enums import ApprovalStatus
from sqlalchemy.orm import Mapped, mapped_column, relationship


class CostAllocation(Base):
    """
    Cost booked against a project's line item.

    Invariants:
    - material_cost == sum(MaterialAllocation.total)
    - total_cost == labour_cost + material_cost
    - labour_cost > 0 or at least one material row
    """

    __tablename__ = "cost_allocations"

    # =========
    # Identity & ownership
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Cost allocation UUID")
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False, index=True, comment="Project ID")
    line_item_id: Mapped[str] = mapped_column(String(36), ForeignKey("line_items.id"), nullable=False, comment="Line item booked against")
    change_order_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("change_orders.id"),
        nullable=True,
        comment="Change order this cost stems from, if any",
    )
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, index=True, comment="Owning tenant")
    entered_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="User who entered the cost")

    # =========
    # 🔢 Amounts
    # =========
    labour_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"), comment="Labour cost")
    material_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"), comment="Sum of material rows")
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("1"), comment="Booked quantity")
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True, comment="total_cost / quantity")
    total_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="labour_cost + material_cost")

    # =========
    # 🔁 Workflow state
    # =========
    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status"),
        nullable=False,
        default=ApprovalStatus.draft,
        comment="approved allocations count as spend",
    )

    date_incurred: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False, comment="When the cost was incurred")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False, comment="Creation timestamp")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
        comment="Last update timestamp",
    )

    material_allocations: Mapped[List["MaterialAllocation"]] = relationship(
        back_populates="cost_allocation",
        cascade="all, delete-orphan",
        order_by="MaterialAllocation.created_at",
    )

    def __repr__(self) -> str:
        return (
            f"<CostAllocation id={self.id} "
            f"project={self.project_id} "
            f"total={self.total_cost} "
            f"status={self.status.value}>"
        )


class MaterialAllocation(Base):
    """
    One material row of a cost allocation. total == quantity * unit_price.
    """

    __tablename__ = "material_allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Material allocation UUID")
    cost_allocation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cost_allocations.id", ondelete="CASCADE"),
        nullable=False,
        comment="Parent cost allocation",
    )
    material_id: Mapped[str] = mapped_column(String(36), ForeignKey("materials.id"), nullable=False, comment="Material ID")
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Quantity used")
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Price paid per unit")
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="quantity * unit_price")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, comment="Owning tenant")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)

    cost_allocation: Mapped[CostAllocation] = relationship(back_populates="material_allocations")
