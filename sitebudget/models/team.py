# sitebudget/models/team.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sitebudget.db.base import Base
from sitebudget.db.enums import TeamRole


class Team(Base):
    """
    Named group of users inside one tenant. Name is unique per tenant.
    """

    __tablename__ = "teams"
    __table_args__ = (
        UniqueConstraint("name", "tenant_id", name="uq_teams_name_tenant"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Team UUID")
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Team name")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    leader_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Team leader, teams may exist without one",
    )
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False, comment="Owning tenant")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, onupdate=datetime.now, nullable=False)

    members: Mapped[List["TeamMember"]] = relationship(
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.joined_at",
    )

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name}>"


class TeamMember(Base):
    __tablename__ = "team_members"

    team_id: Mapped[str] = mapped_column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_in_team: Mapped[TeamRole] = mapped_column(
        Enum(TeamRole, name="team_role"),
        nullable=False,
        default=TeamRole.member,
    )
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.now, nullable=False)

    team: Mapped[Team] = relationship(back_populates="members")
