# sitebudget/services/registry.py
from sqlalchemy.orm import Session

from sitebudget.db.enums import WorkflowTable
from sitebudget.services.analytics_service import AnalyticsService
from sitebudget.services.approval_service import ApprovalService
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_alert_service import BudgetAlertService
from sitebudget.services.budget_amendment_service import BudgetAmendmentService
from sitebudget.services.budget_history_service import BudgetHistoryService
from sitebudget.services.catalog_service import CatalogService
from sitebudget.services.change_order_service import ChangeOrderService
from sitebudget.services.company_service import CompanyService
from sitebudget.services.cost_allocation_service import CostAllocationService
from sitebudget.services.permission_service import PermissionService
from sitebudget.services.project_assignment_service import ProjectAssignmentService
from sitebudget.services.project_service import ProjectService
from sitebudget.services.team_service import TeamService
from sitebudget.services.transaction_service import TransactionService
from sitebudget.services.user_service import UserService


class ServiceRegistry:
    """
    Every service of one request, wired over the same session.
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit_log = AuditLogService(db)
        self.permissions = PermissionService(db)

        self.users = UserService(db, self.audit_log)
        self.companies = CompanyService(db, self.audit_log, self.users)
        self.projects = ProjectService(db, self.audit_log)
        self.assignments = ProjectAssignmentService(db, self.audit_log)
        self.catalog = CatalogService(db, self.audit_log)
        self.alerts = BudgetAlertService(db, self.audit_log)
        self.transactions = TransactionService(db, self.audit_log)
        self.teams = TeamService(db, self.audit_log)

        self.amendments = BudgetAmendmentService(db, self.audit_log, self.permissions)
        self.change_orders = ChangeOrderService(db, self.audit_log, self.permissions)
        self.cost_allocations = CostAllocationService(
            db, self.audit_log, self.permissions, self.catalog, self.alerts
        )
        self.approvals = ApprovalService(db, {
            WorkflowTable.cost_allocations: self.cost_allocations,
            WorkflowTable.budget_amendments: self.amendments,
            WorkflowTable.change_orders: self.change_orders,
        })

        self.history = BudgetHistoryService(db)
        self.analytics = AnalyticsService(db)
