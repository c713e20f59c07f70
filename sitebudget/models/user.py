# sitebudget/models/user.py
from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    Enum,
    Integer,
    ForeignKey,
    Index,
    func,
)
from sitebudget.db.base import Base
from sitebudget.db.enums import UserRole, UserStatus
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class User(Base):
    """
    Operator of one tenant. Email is unique per company, case-insensitively.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="User UUID")

    email: Mapped[str] = mapped_column(String(255), nullable=False, comment="Login email")
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="First name")
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Last name")

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.user,
        comment="Role inside the tenant",
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status"),
        nullable=False,
        default=UserStatus.active,
        comment="Whether the account may log in",
    )

    manager_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
        comment="Reporting manager",
    )
    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id"),
        nullable=False,
        comment="Owning tenant",
    )

    # =========
    # 🔐 Authentication
    # =========
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="bcrypt hash")
    must_change_password: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Force a password change on next login",
    )
    failed_login_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Consecutive failed logins")
    locked_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Login is refused until this moment",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        nullable=False,
        comment="Account creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
        comment="Last update timestamp",
    )

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value}>"


Index("idx_users_email_company", func.lower(User.email), User.company_id)
