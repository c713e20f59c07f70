# sitebudget/models/project_assignment.py
from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base


class ProjectAssignment(Base):
    """
    Team leader assigned to a project. Grants proposal rights on that project.
    """

    __tablename__ = "project_assignments"
    __table_args__ = (
        UniqueConstraint("tenant_id", "project_id", "user_id", name="uq_project_assignments_tenant"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Assignment UUID")
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False, comment="Project ID")
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="Assigned user")
    assigned_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="Admin who assigned")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        nullable=False,
        comment="Creation timestamp",
    )
