from sitebudget.db.session import get_engine
from sitebudget.db.base import Base

#-------------------register every table on Base.metadata-----------------------
from sitebudget.models.company import Company  # noqa: F401
from sitebudget.models.user import User  # noqa: F401
from sitebudget.models.project import Project  # noqa: F401
from sitebudget.models.project_assignment import ProjectAssignment  # noqa: F401
from sitebudget.models.catalog import LineItem, Material  # noqa: F401
from sitebudget.models.budget_amendment import BudgetAmendment  # noqa: F401
from sitebudget.models.change_order import ChangeOrder  # noqa: F401
from sitebudget.models.cost_allocation import CostAllocation, MaterialAllocation  # noqa: F401
from sitebudget.models.approval_workflow import ApprovalWorkflow  # noqa: F401
from sitebudget.models.transaction import Transaction  # noqa: F401
from sitebudget.models.budget_alert import BudgetAlert  # noqa: F401
from sitebudget.models.audit_log import AuditLog  # noqa: F401
from sitebudget.models.team import Team, TeamMember  # noqa: F401


def init_db():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
