# sitebudget/schemas/requests.py
"""
Request bodies accepted by the JSON API.
Field names are camelCase on the wire, snake_case here.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sitebudget.db.enums import (
    ApprovalStatus,
    LineItemCategory,
    TeamRole,
    TransactionType,
    UserRole,
    UserStatus,
)


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator("*", mode="after")
    @classmethod
    def naive_datetimes(cls, value):
        # stored timestamps are naive local time
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    def changes(self) -> dict:
        """Only the fields the client actually sent, for PATCH bodies."""
        return self.model_dump(exclude_unset=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# =========
# Auth / users
# =========
class LoginRequest(RequestModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    company_id: Optional[str] = None


class ChangePasswordRequest(RequestModel):
    current_password: str
    new_password: str


class CreateUserRequest(RequestModel):
    email: str = Field(min_length=3)
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.user
    status: UserStatus = UserStatus.active
    manager_id: Optional[str] = None


class UpdateUserRoleRequest(RequestModel):
    role: UserRole


class UpdateUserStatusRequest(RequestModel):
    status: UserStatus


# =========
# Companies
# =========
class CreateCompanyRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    address: Optional[str] = None
    industry: Optional[str] = None
    subscription_plan: str = "basic"
    currency: str = Field(default="NGN", min_length=3, max_length=3)
    admin_email: str = Field(min_length=3)
    admin_password: str
    admin_first_name: Optional[str] = None
    admin_last_name: Optional[str] = None


class UpdateCompanyRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    industry: Optional[str] = None
    subscription_plan: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class CompanyPasswordRequest(RequestModel):
    new_password: str


class PopulateIndustryRequest(RequestModel):
    industry: str = Field(min_length=1)


# =========
# Projects
# =========
class CreateProjectRequest(RequestModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    budget: Decimal = Field(ge=0)
    revenue: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: datetime
    end_date: datetime
    status: str = "active"
    manager_id: Optional[str] = None


class UpdateProjectRequest(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    revenue: Optional[Decimal] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[str] = None
    manager_id: Optional[str] = None


class ProjectAssignmentRequest(RequestModel):
    project_id: str
    user_id: str


class ImpactPreviewRequest(RequestModel):
    amount: Decimal
    kind: Literal["amendment", "change_order"] = "amendment"


# =========
# Proposals
# =========
class CreateBudgetAmendmentRequest(RequestModel):
    project_id: str
    amount_added: Decimal
    reason: str


class CreateChangeOrderRequest(RequestModel):
    project_id: str
    description: str
    cost_impact: Optional[Decimal] = None

    blank_impact_to_none = field_validator("cost_impact", mode="before")(_blank_to_none)


class ProposalStatusRequest(RequestModel):
    status: Literal["approved", "rejected"]
    comments: Optional[str] = None


class RejectRequest(RequestModel):
    comments: Optional[str] = None


class ApproveRequest(RequestModel):
    comments: Optional[str] = None


# =========
# Cost allocations
# =========
class MaterialAllocationInput(RequestModel):
    material_id: str
    quantity: Decimal
    unit_price: Decimal


class CreateCostAllocationRequest(RequestModel):
    project_id: str
    line_item_id: str
    labour_cost: Decimal = Decimal("0")
    material_allocations: List[MaterialAllocationInput] = []
    quantity: Optional[Decimal] = None
    change_order_id: Optional[str] = None
    date_incurred: Optional[datetime] = None

    blank_optionals_to_none = field_validator("quantity", "change_order_id", mode="before")(_blank_to_none)


class CostAllocationFilter(RequestModel):
    status: Optional[ApprovalStatus] = None
    project_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: List[LineItemCategory] = []

    @field_validator("categories", mode="before")
    @classmethod
    def split_categories(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


# =========
# Catalog
# =========
class CreateLineItemRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    category: LineItemCategory
    description: Optional[str] = None


class UpdateLineItemRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[LineItemCategory] = None
    description: Optional[str] = None


class CreateMaterialRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    unit: str = Field(min_length=1, max_length=50)
    current_unit_price: Decimal
    supplier: Optional[str] = None


class UpdateMaterialRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=50)
    current_unit_price: Optional[Decimal] = None
    supplier: Optional[str] = None


# =========
# Transactions / teams
# =========
class CreateTransactionRequest(RequestModel):
    project_id: str
    type: TransactionType
    amount: Decimal
    category: LineItemCategory
    description: Optional[str] = None
    status: str = "completed"


class CreateTeamRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    leader_id: Optional[str] = None


class UpdateTeamRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    leader_id: Optional[str] = None


class AddTeamMemberRequest(RequestModel):
    user_id: str
    role_in_team: TeamRole = TeamRole.member
