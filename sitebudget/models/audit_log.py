# sitebudget/models/audit_log.py
from sqlalchemy import (
    String,
    DateTime,
    Enum,
    JSON,
    Numeric,
)
from sitebudget.db.base import Base
from sitebudget.db.enums import AuditAction
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from decimal import Decimal
from typing import Optional


class AuditLog(Base):
    __tablename__ = "audit_logs"

    # =========
    # 🔒 Immutable fields (no update, no delete)
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Audit log UUID")

    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Operator, None for system actions")

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, name="audit_action"),
        nullable=False,
        comment="Type of action performed",
    )

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, comment="Type of the audited entity")
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="UUID of the audited entity")

    project_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True, comment="Associated project ID, if applicable")
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True, comment="Money amount involved, if any")
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="Free-form JSON context")  # before / after values live here

    tenant_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        nullable=False,
        comment="Timestamp when the action was performed",
    )

    # =========
    # Optional: representation
    # =========
    def __repr__(self) -> str:
        return (
            f"<AuditLog entity={self.entity_type} "
            f"entity_id={self.entity_id} "
            f"action={self.action.value}>"
        )
