# sitebudget/models/catalog.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.db.enums import LineItemCategory


class LineItem(Base):
    """
    Budget category (e.g. "Foundation Work") that cost allocations are booked against.
    """

    __tablename__ = "line_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Line item UUID")
    category: Mapped[LineItemCategory] = mapped_column(
        Enum(LineItemCategory, name="line_item_category"),
        nullable=False,
        comment="Reporting category",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Display name")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Description")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<LineItem id={self.id} name={self.name} category={self.category.value}>"


class Material(Base):
    """
    Priced material of the tenant catalogue.
    """

    __tablename__ = "materials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Material UUID")
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Material name")
    unit: Mapped[str] = mapped_column(String(50), nullable=False, comment="Unit of measure (bag, ton, sqm ...)")
    current_unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Catalogue unit price")
    supplier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Supplier name")
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<Material id={self.id} name={self.name} price={self.current_unit_price}>"
