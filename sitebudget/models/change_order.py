# sitebudget/models/change_order.py
from decimal import Decimal

from sqlalchemy import Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.models.mixins.base_proposal import BaseProposalMixin


class ChangeOrder(Base, BaseProposalMixin):
    """
    Proposed scope change. A zero cost_impact is informational only and
    never moves the budget.
    """

    __tablename__ = "change_orders"

    description: Mapped[str] = mapped_column(Text, nullable=False, comment="Scope change, 20-2000 chars")
    cost_impact: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Signed budget delta, may be zero",
    )

    def __repr__(self) -> str:
        return (
            f"<ChangeOrder id={self.id} "
            f"project={self.project_id} "
            f"impact={self.cost_impact} "
            f"status={self.status.value}>"
        )
