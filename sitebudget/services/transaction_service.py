from typing import List, Optional
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction, LineItemCategory, TransactionType
from sitebudget.errors import InputError
from sitebudget.logger import get_logger
from sitebudget.models.project import Project
from sitebudget.models.transaction import Transaction
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_impact import ZERO, to_decimal

logger = get_logger(__name__)


class TransactionService:
    """
    Expense / revenue / allocation / transfer movements on a project.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def create_transaction(
        self,
        *,
        user: User,
        project: Project,
        type: TransactionType,
        amount,
        category: LineItemCategory,
        description: Optional[str] = None,
        status: str = "completed",
    ) -> Transaction:
        '''
        :param amount: strictly positive; the type carries the direction
        '''
        try:
            amount = to_decimal(amount)
        except ValueError:
            raise InputError("Amount must be a valid number", details={"field": "amount"})
        if amount <= ZERO:
            raise InputError("Amount must be greater than zero", details={"field": "amount"})

        transaction = Transaction(
            id=str(uuid4()),
            project_id=project.id,
            user_id=user.id,
            type=type,
            amount=amount,
            category=category,
            description=description,
            status=status,
            tenant_id=project.tenant_id,
        )
        self.db.add(transaction)
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.revenue_added if type == TransactionType.revenue else AuditAction.expense_submitted,
            entity_type="transaction",
            entity_id=transaction.id,
            user_id=user.id,
            tenant_id=project.tenant_id,
            project_id=project.id,
            amount=amount,
            details={"type": type, "category": category},
        )
        logger.info(f"Transaction {transaction.id} ({type.value} {amount}) on project {project.id}")
        return transaction

    def list_transactions(
        self,
        *,
        tenant_id: str,
        project_ids: Optional[List[str]] = None,
        project_id: Optional[str] = None,
        type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> List[Transaction]:
        query = self.db.query(Transaction).filter(Transaction.tenant_id == tenant_id)
        if project_ids is not None:
            query = query.filter(Transaction.project_id.in_(project_ids))
        if project_id:
            query = query.filter(Transaction.project_id == project_id)
        if type:
            query = query.filter(Transaction.type == type)
        query = query.order_by(desc(Transaction.created_at))
        if limit:
            query = query.limit(limit)
        return query.all()
