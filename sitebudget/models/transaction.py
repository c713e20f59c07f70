# sitebudget/models/transaction.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.db.enums import TransactionType, LineItemCategory


class Transaction(Base):
    """
    Money movement on a project. Expense rows count as spend,
    revenue rows feed totalRevenue.
    """

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Transaction UUID")
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False, index=True, comment="Project ID")
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, comment="Submitting user")
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type"),
        nullable=False,
        comment="allocation / expense / transfer / revenue",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Positive amount")
    category: Mapped[LineItemCategory] = mapped_column(
        Enum(LineItemCategory, name="line_item_category"),
        nullable=False,
        comment="Reporting category",
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text description")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="completed", comment="Settlement status")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, index=True, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type.value} amount={self.amount}>"
