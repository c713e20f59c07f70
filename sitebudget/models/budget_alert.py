# sitebudget/models/budget_alert.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.db.enums import BudgetAlertType, BudgetAlertStatus


class BudgetAlert(Base):
    """
    Raised when a project's spend crosses a variance threshold.
    At most one active alert per (project, type).
    """

    __tablename__ = "budget_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Alert UUID")
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False, index=True, comment="Project ID")
    type: Mapped[BudgetAlertType] = mapped_column(Enum(BudgetAlertType, name="budget_alert_type"), nullable=False)
    status: Mapped[BudgetAlertStatus] = mapped_column(
        Enum(BudgetAlertStatus, name="budget_alert_status"),
        nullable=False,
        default=BudgetAlertStatus.active,
    )
    severity: Mapped[str] = mapped_column(String(20), nullable=False, comment="warning / critical")
    message: Mapped[str] = mapped_column(Text, nullable=False, comment="Human readable alert text")
    spent_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 2), nullable=True)
    remaining_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    triggered_by: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, comment="User whose write raised the alert")
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, index=True, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<BudgetAlert project={self.project_id} type={self.type.value} status={self.status.value}>"
