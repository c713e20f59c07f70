# sitebudget/models/mixins/base_proposal.py
from typing import Optional
from sqlalchemy import String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, declared_attr
from datetime import datetime
from sitebudget.db.enums import ApprovalStatus


class BaseProposalMixin:
    """
    Base mixin for budget-affecting proposals (budget amendment / change order).

    Invariants:
    - Belongs to one project of one tenant
    - Status moves draft/pending -> approved | rejected, never back
    - approved_by / approved_at are stamped by the transition, not by callers
    """
    # =========
    # Identity & ownership
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Proposal UUID")

    @declared_attr
    def project_id(cls) -> Mapped[str]:
        return mapped_column(String(36), ForeignKey("projects.id"), nullable=False, index=True, comment="Associated project ID")

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(String(36), ForeignKey("companies.id"), nullable=False, index=True, comment="Owning tenant")

    @declared_attr
    def proposed_by(cls) -> Mapped[str]:
        return mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="Proposing user")

    # =========
    # 🔁 Workflow state
    # =========
    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status"),
        nullable=False,
        default=ApprovalStatus.draft,
        comment="draft / pending / approved / rejected",
    )

    @declared_attr
    def approved_by(cls) -> Mapped[Optional[str]]:
        return mapped_column(String(36), ForeignKey("users.id"), nullable=True, comment="Admin who approved or rejected")

    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Decision timestamp",
    )
    review_comments: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Reviewer comments, mandatory on rejection",
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
