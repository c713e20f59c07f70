from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4
from decimal import Decimal
from datetime import datetime, date
import enum

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sitebudget.models.audit_log import AuditLog
from sitebudget.db.enums import AuditAction


class AuditLogService:
    """
    Writes and pages the tenant audit trail. Services never build AuditLog rows
    themselves; they call record / record_update inside their own transaction.
    Rows are added to the caller's session and committed with the business change.
    """

    def __init__(self, db: Session):
        self.db = db

    def serialize_audit_value(self, value) -> Any:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return str(value)  # keep cents exact
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, enum.Enum):
            return value.value
        if isinstance(value, (int, float, str, bool)):
            return value
        if isinstance(value, dict):
            return {str(k): self.serialize_audit_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.serialize_audit_value(v) for v in value]
        return str(value)  # fallback

    def record(
        self,
        *,
        action: Union[str, AuditAction],
        entity_type: str,
        entity_id: str,
        user_id: Optional[str],
        tenant_id: Optional[str],
        project_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        '''
        Add one audit row.

        :param action: what happened, AuditAction or its value
        :type action: Union[str, AuditAction]
        :param entity_type: lower snake case type of the entity ("project", "budget_amendment" ...)
        :type entity_type: str
        :param entity_id: UUID of the entity
        :type entity_id: str
        :param user_id: operator, None for system actions and unknown login emails
        :type user_id: Optional[str]
        :param tenant_id: owning tenant
        :type tenant_id: Optional[str]
        :param project_id: associated project, optional
        :type project_id: Optional[str]
        :param amount: money amount involved, optional
        :type amount: Optional[Decimal]
        :param details: free-form context, e.g. {"before": ..., "after": ...}
        :type details: Optional[Dict[str, Any]]
        '''
        log = AuditLog(
            id=str(uuid4()),
            user_id=user_id,
            action=AuditAction(action),
            entity_type=entity_type.lower(),
            entity_id=entity_id,
            project_id=project_id,
            amount=amount,
            details=self.serialize_audit_value(details) if details else None,
            tenant_id=tenant_id,
            created_at=datetime.now(),
        )
        self.db.add(log)
        return log

    def record_update(
        self,
        *,
        action: Union[str, AuditAction],
        entity_type: str,
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        user_id: Optional[str],
        tenant_id: Optional[str],
        project_id: Optional[str] = None,
        amount: Optional[Decimal] = None,
    ) -> AuditLog:
        '''
        Audit row for a single attribute change, before / after kept in details.

        :param changed_attribute: name of the changed attribute
        :type changed_attribute: str
        :param before_value: value before the change
        :type before_value: Any
        :param after_value: value after the change
        :type after_value: Any
        '''
        return self.record(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            tenant_id=tenant_id,
            project_id=project_id,
            amount=amount,
            details={
                "changed_attribute": changed_attribute,
                "before": before_value,
                "after": after_value,
            },
        )

    def list_logs(
        self,
        *,
        tenant_id: str,
        project_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """
        :return: (rows of the requested page, newest first; total row count)
        """
        query = self.db.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)
        if project_id:
            query = query.filter(AuditLog.project_id == project_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)

        total = query.count()
        page = max(page, 1)
        rows = (
            query.order_by(desc(AuditLog.created_at))
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return rows, total
