from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sitebudget.models.audit_log import AuditLog
from sitebudget.models.catalog import LineItem, Material
from sitebudget.models.company import Company
from sitebudget.models.project_assignment import ProjectAssignment
from sitebudget.models.team import Team, TeamMember
from sitebudget.models.user import User
from sitebudget.schemas.dto.base_dto import BaseDTO
from sitebudget.schemas.dto.ledger_dto import MoneyDTO


class CompanyDTO(BaseDTO):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    industry: Optional[str] = None
    subscription_plan: str
    status: str
    currency: str
    created_at: datetime

    @classmethod
    def from_orm_model(cls, company: Company) -> "CompanyDTO":
        return cls(
            id=company.id,
            name=company.name,
            email=company.email,
            phone=company.phone,
            address=company.address,
            industry=company.industry,
            subscription_plan=company.subscription_plan,
            status=company.status.value,
            currency=company.currency,
            created_at=company.created_at,
        )


class UserDTO(BaseDTO):
    # never carries the password hash or lock-out counters
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: str
    role: str
    status: str
    company_id: str
    manager_id: Optional[str] = None
    must_change_password: bool
    created_at: datetime

    @classmethod
    def from_orm_model(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
            role=user.role.value,
            status=user.status.value,
            company_id=user.company_id,
            manager_id=user.manager_id,
            must_change_password=user.must_change_password,
            created_at=user.created_at,
        )


class TeamMemberDTO(BaseDTO):
    user_id: str
    role_in_team: str
    joined_at: datetime

    @classmethod
    def from_orm_model(cls, member: TeamMember) -> "TeamMemberDTO":
        return cls(user_id=member.user_id, role_in_team=member.role_in_team.value, joined_at=member.joined_at)


class TeamDTO(BaseDTO):
    id: str
    name: str
    description: Optional[str] = None
    leader_id: Optional[str] = None
    members: List[TeamMemberDTO] = []
    created_at: datetime

    @classmethod
    def from_orm_model(cls, team: Team) -> "TeamDTO":
        return cls(
            id=team.id,
            name=team.name,
            description=team.description,
            leader_id=team.leader_id,
            members=[TeamMemberDTO.from_orm_model(m) for m in team.members],
            created_at=team.created_at,
        )


class LineItemDTO(BaseDTO):
    id: str
    name: str
    category: str
    description: Optional[str] = None

    @classmethod
    def from_orm_model(cls, line_item: LineItem) -> "LineItemDTO":
        return cls(
            id=line_item.id,
            name=line_item.name,
            category=line_item.category.value,
            description=line_item.description,
        )


class MaterialDTO(BaseDTO):
    id: str
    name: str
    unit: str
    current_unit_price: MoneyDTO
    supplier: Optional[str] = None

    @classmethod
    def from_orm_model(cls, material: Material, currency: str = "NGN") -> "MaterialDTO":
        return cls(
            id=material.id,
            name=material.name,
            unit=material.unit,
            current_unit_price=MoneyDTO.of(material.current_unit_price, currency),
            supplier=material.supplier,
        )


class ProjectAssignmentDTO(BaseDTO):
    id: str
    project_id: str
    user_id: str
    assigned_by: str
    created_at: datetime

    @classmethod
    def from_orm_model(cls, assignment: ProjectAssignment) -> "ProjectAssignmentDTO":
        return cls(
            id=assignment.id,
            project_id=assignment.project_id,
            user_id=assignment.user_id,
            assigned_by=assignment.assigned_by,
            created_at=assignment.created_at,
        )


class AuditLogDTO(BaseDTO):
    id: str
    user_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    project_id: Optional[str] = None
    amount: Optional[Decimal] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    @classmethod
    def from_orm_model(cls, log: AuditLog) -> "AuditLogDTO":
        return cls(
            id=log.id,
            user_id=log.user_id,
            action=log.action.value,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            project_id=log.project_id,
            amount=log.amount,
            details=log.details,
            created_at=log.created_at,
        )
