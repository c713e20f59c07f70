# sitebudget/db/enums.py
import enum


# User / tenant related enums
class UserRole(enum.Enum):
    console_manager = "console_manager"
    manager = "manager"
    admin = "admin"
    team_leader = "team_leader"
    user = "user"
    viewer = "viewer"


class UserStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class CompanyStatus(enum.Enum):
    active = "active"
    suspended = "suspended"


# Ledger related enums
class ApprovalStatus(enum.Enum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# statuses a proposal can still leave
OPEN_APPROVAL_STATUSES = (ApprovalStatus.draft, ApprovalStatus.pending)


class WorkflowTable(enum.Enum):
    cost_allocations = "cost_allocations"
    budget_amendments = "budget_amendments"
    change_orders = "change_orders"


class TransactionType(enum.Enum):
    allocation = "allocation"
    expense = "expense"
    transfer = "transfer"
    revenue = "revenue"


class LineItemCategory(enum.Enum):
    development_resources = "development_resources"
    design_tools = "design_tools"
    testing_qa = "testing_qa"
    infrastructure = "infrastructure"
    marketing = "marketing"
    operations = "operations"
    miscellaneous = "miscellaneous"
    land_purchase = "land_purchase"
    site_preparation = "site_preparation"
    foundation = "foundation"
    structural = "structural"
    roofing = "roofing"
    electrical = "electrical"
    plumbing = "plumbing"
    finishing = "finishing"
    external_works = "external_works"


class HistoryEntryType(enum.Enum):
    initial = "initial"
    amendment = "amendment"
    change_order = "change_order"


class ImpactType(enum.Enum):
    increase = "increase"
    decrease = "decrease"
    none = "none"


class UtilizationState(enum.Enum):
    healthy = "healthy"
    warning = "warning"
    critical = "critical"


# BudgetAlert related enums
class BudgetAlertType(enum.Enum):
    warning_threshold = "warning_threshold"
    critical_threshold = "critical_threshold"
    over_budget = "over_budget"
    budget_allocation_denied = "budget_allocation_denied"


class BudgetAlertStatus(enum.Enum):
    active = "active"
    acknowledged = "acknowledged"
    resolved = "resolved"


class TeamRole(enum.Enum):
    member = "member"
    lead = "lead"


# AuditLog related enums
class AuditAction(enum.Enum):
    project_created = "project_created"
    project_updated = "project_updated"
    expense_submitted = "expense_submitted"
    revenue_added = "revenue_added"
    user_created = "user_created"
    user_role_updated = "user_role_updated"
    user_status_updated = "user_status_updated"
    cost_allocated = "cost_allocated"
    material_added = "material_added"
    material_updated = "material_updated"
    line_item_created = "line_item_created"
    line_item_updated = "line_item_updated"
    budget_amendment_created = "budget_amendment_created"
    budget_amended = "budget_amended"
    change_order_created = "change_order_created"
    approval_workflow_updated = "approval_workflow_updated"
    project_assignment_created = "project_assignment_created"
    project_assignment_removed = "project_assignment_removed"
    login_failed_user_not_found = "login_failed_user_not_found"
    login_failed_account_locked = "login_failed_account_locked"
    login_failed_account_inactive = "login_failed_account_inactive"
    login_failed_invalid_password = "login_failed_invalid_password"
    login_successful = "login_successful"
    password_changed = "password_changed"
    company_created = "company_created"
    company_updated = "company_updated"
    company_admin_password_changed = "company_admin_password_changed"
    company_industry_populated = "company_industry_populated"
    team_created = "team_created"
    team_updated = "team_updated"
    team_deleted = "team_deleted"
    team_member_added = "team_member_added"
    team_member_removed = "team_member_removed"
    budget_alert_updated = "budget_alert_updated"
