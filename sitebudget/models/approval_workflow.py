# sitebudget/models/approval_workflow.py
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.db.enums import ApprovalStatus, WorkflowTable


class ApprovalWorkflow(Base):
    """
    Approval queue entry for one cost allocation / amendment / change order.
    Its status is kept in step with the record it points to.
    """

    __tablename__ = "approval_workflows"
    __table_args__ = (
        UniqueConstraint("related_table", "record_id", name="uq_approval_workflows_record"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Workflow UUID")
    related_table: Mapped[WorkflowTable] = mapped_column(
        Enum(WorkflowTable, name="workflow_table"),
        nullable=False,
        comment="Table of the record under approval",
    )
    record_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True, comment="ID of the record under approval")
    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status"),
        nullable=False,
        default=ApprovalStatus.pending,
        comment="Mirrors the record status",
    )
    approver_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True, comment="Deciding user")
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Decision comments")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, index=True, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalWorkflow table={self.related_table.value} "
            f"record={self.record_id} "
            f"status={self.status.value}>"
        )
