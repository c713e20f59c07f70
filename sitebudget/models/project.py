# sitebudget/models/project.py
from sitebudget.db.base import Base
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column


class Project(Base):
    """
    Budgeted project of a tenant.

    Invariants:
    - budget changes only through an approved BudgetAmendment / ChangeOrder
      or an audited admin edit
    - consumed_amount may exceed budget; that is flagged, never blocked
    """

    __tablename__ = "projects"

    # =========
    # 🔒 Identity & ownership
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Project UUID")
    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id"),
        nullable=False,
        index=True,
        comment="Owning tenant",
    )
    manager_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        comment="User who created / manages the project",
    )

    # =========
    # ✍️ Descriptive
    # =========
    title: Mapped[str] = mapped_column(String(255), nullable=False, comment="Project title")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text description")
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="Planned start")
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="Planned end")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active", comment="active or any other lifecycle label")

    # =========
    # 💰 Ledger figures
    # =========
    budget: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Current total budget")
    initial_budget: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="Budget before any approved amendment / change order; moved by direct admin edits",
    )
    consumed_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Running spend from approved cost allocations",
    )
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Contract revenue entered on the project",
    )

    # =========
    # ⏱ Timestamps
    # =========
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        nullable=False,
        comment="Creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
        comment="Last update timestamp",
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} title={self.title} budget={self.budget}>"
