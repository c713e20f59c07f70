from sitebudget.db.enums import ApprovalStatus, AuditAction, WorkflowTable
from sitebudget.errors import InputError
from sitebudget.models.budget_amendment import BudgetAmendment
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.budget_impact import KIND_AMENDMENT, ZERO, to_decimal
from sitebudget.services.proposal_service import ProposalService, validate_text_length

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 1000


class BudgetAmendmentService(ProposalService):
    """
    Permanent change of a project's total budget.
    Created pending; approval adds amount_added (signed) to the budget.
    """

    model = BudgetAmendment
    workflow_table = WorkflowTable.budget_amendments
    entity_type = "budget_amendment"
    kind = KIND_AMENDMENT
    amount_attr = "amount_added"
    created_action = AuditAction.budget_amendment_created

    def propose(
        self,
        *,
        user: User,
        project: Project,
        amount_added,
        reason: str,
    ) -> BudgetAmendment:
        '''
        :param amount_added: signed, non-zero decimal
        :param reason: 10-1000 characters
        :raises InputError: zero / non-numeric amount or reason length out of range
        :raises PermissionDeniedError: neither admin nor team leader assigned to the project
        '''
        try:
            amount = to_decimal(amount_added)
        except ValueError:
            raise InputError("Amount must be a valid number", details={"field": "amountAdded"})
        if amount == ZERO:
            raise InputError("Amount must not be zero", details={"field": "amountAdded"})
        reason = validate_text_length(reason, field="reason", minimum=REASON_MIN_LENGTH, maximum=REASON_MAX_LENGTH)

        return self._create(
            user=user,
            project=project,
            amount=amount,
            status=ApprovalStatus.pending,
            reason=reason,
        )
