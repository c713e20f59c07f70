from sitebudget.db.enums import ApprovalStatus, AuditAction, WorkflowTable
from sitebudget.errors import InputError
from sitebudget.models.change_order import ChangeOrder
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.budget_impact import KIND_CHANGE_ORDER, ZERO, to_decimal
from sitebudget.services.proposal_service import ProposalService, validate_text_length

DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 2000


class ChangeOrderService(ProposalService):
    """
    Scope changes. A zero cost impact is stored as draft and never moves the budget.
    """

    model = ChangeOrder
    workflow_table = WorkflowTable.change_orders
    entity_type = "change_order"
    kind = KIND_CHANGE_ORDER
    amount_attr = "cost_impact"
    created_action = AuditAction.change_order_created

    def propose(
        self,
        *,
        user: User,
        project: Project,
        description: str,
        cost_impact=None,
    ) -> ChangeOrder:
        '''
        :param description: 20-2000 characters
        :param cost_impact: signed decimal, blank / None means 0
        '''
        description = validate_text_length(
            description,
            field="description",
            minimum=DESCRIPTION_MIN_LENGTH,
            maximum=DESCRIPTION_MAX_LENGTH,
        )
        if cost_impact is None or (isinstance(cost_impact, str) and not cost_impact.strip()):
            impact = ZERO
        else:
            try:
                impact = to_decimal(cost_impact)
            except ValueError:
                raise InputError("Cost impact must be a valid number", details={"field": "costImpact"})

        status = ApprovalStatus.draft if impact == ZERO else ApprovalStatus.pending
        return self._create(
            user=user,
            project=project,
            amount=impact,
            status=status,
            description=description,
        )
