# sitebudget/models/company.py
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from sitebudget.db.base import Base
from sitebudget.db.enums import CompanyStatus


class Company(Base):
    """
    Tenant. Every other row carries the id of exactly one company.
    """

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Company UUID")

    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Company name")
    email: Mapped[str] = mapped_column(String(255), nullable=False, comment="Company contact email")
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Company phone number")
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Postal address")
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Industry template key")

    subscription_plan: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="basic",
        comment="Subscription plan",
    )
    status: Mapped[CompanyStatus] = mapped_column(
        Enum(CompanyStatus, name="company_status"),
        nullable=False,
        default=CompanyStatus.active,
        comment="Whether the tenant is active",
    )
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="NGN",
        comment="ISO 4217 code every money amount of this tenant is expressed in",
    )

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Console manager who created this company",
    )
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
        return f"<Company id={self.id} name={self.name}>"
