# sitebudget/models/budget_amendment.py
from decimal import Decimal

from sqlalchemy import Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.models.mixins.base_proposal import BaseProposalMixin


class BudgetAmendment(Base, BaseProposalMixin):
    """
    Proposed permanent change of a project's total budget.
    On approval amount_added (signed) is applied to Project.budget.
    """

    __tablename__ = "budget_amendments"

    amount_added: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="Signed budget delta, never zero",
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False, comment="Justification, 10-1000 chars")

    def __repr__(self) -> str:
        return (
            f"<BudgetAmendment id={self.id} "
            f"project={self.project_id} "
            f"amount={self.amount_added} "
            f"status={self.status.value}>"
        )
