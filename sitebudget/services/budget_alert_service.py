# sitebudget/services/budget_alert_service.py
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction, BudgetAlertStatus, BudgetAlertType, UtilizationState
from sitebudget.errors import InvalidTransitionError, NotFoundError
from sitebudget.logger import get_logger
from sitebudget.models.budget_alert import BudgetAlert
from sitebudget.models.company import Company
from sitebudget.models.project import Project
from sitebudget.presentation.currency import format_currency
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.budget_impact import calc_budget_variance

logger = get_logger(__name__)


class BudgetAlertService:
    """
    Budget variance alerts. Spend >= 95 % raises a critical (or over-budget)
    alert, >= 80 % a warning. One active alert per (project, type).
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def _active_alert(self, project: Project, alert_type: BudgetAlertType) -> Optional[BudgetAlert]:
        return (
            self.db.query(BudgetAlert)
            .filter(
                BudgetAlert.project_id == project.id,
                BudgetAlert.tenant_id == project.tenant_id,
                BudgetAlert.type == alert_type,
                BudgetAlert.status == BudgetAlertStatus.active,
            )
            .first()
        )

    def check_and_create_alerts(self, project: Project, *, triggered_by: Optional[str] = None) -> List[BudgetAlert]:
        '''
        Evaluate the project's spend against its budget and open missing alerts.

        :return: alerts created by this call (empty when nothing new crossed a threshold)
        '''
        variance = calc_budget_variance(project.budget, project.consumed_amount)
        if variance.status == UtilizationState.healthy:
            return []

        currency = (
            self.db.query(Company.currency).filter(Company.id == project.tenant_id).scalar()
            or "NGN"
        )
        percent = f"{variance.spent_percentage:.1f}%"

        if variance.status == UtilizationState.critical:
            alert_type = BudgetAlertType.over_budget if variance.is_over_budget else BudgetAlertType.critical_threshold
            severity = "critical"
            if variance.is_over_budget:
                message = (
                    f'CRITICAL: Project "{project.title}" is over budget by '
                    f"{format_currency(abs(variance.variance), currency)} ({percent} spent)"
                )
            else:
                message = (
                    f'CRITICAL: Project "{project.title}" budget critically low - {percent} spent, '
                    f"only {format_currency(variance.remaining_budget, currency)} remaining"
                )
        else:
            alert_type = BudgetAlertType.warning_threshold
            severity = "warning"
            message = (
                f'WARNING: Project "{project.title}" approaching budget limit - {percent} spent, '
                f"{format_currency(variance.remaining_budget, currency)} remaining"
            )

        if self._active_alert(project, alert_type):
            return []

        alert = BudgetAlert(
            id=str(uuid4()),
            project_id=project.id,
            type=alert_type,
            status=BudgetAlertStatus.active,
            severity=severity,
            message=message,
            spent_percentage=variance.spent_percentage,
            remaining_budget=variance.remaining_budget,
            triggered_by=triggered_by,
            tenant_id=project.tenant_id,
        )
        self.db.add(alert)
        self.db.flush()
        logger.warning(message)
        return [alert]

    def list_alerts(
        self,
        *,
        tenant_id: str,
        status: Optional[BudgetAlertStatus] = None,
        project_ids: Optional[List[str]] = None,
    ) -> List[BudgetAlert]:
        query = self.db.query(BudgetAlert).filter(BudgetAlert.tenant_id == tenant_id)
        if status:
            query = query.filter(BudgetAlert.status == status)
        if project_ids is not None:
            query = query.filter(BudgetAlert.project_id.in_(project_ids))
        return query.order_by(desc(BudgetAlert.created_at)).all()

    def _transition(self, *, tenant_id: str, alert_id: str, status: BudgetAlertStatus, operator_id: str) -> BudgetAlert:
        alert = (
            self.db.query(BudgetAlert)
            .filter(BudgetAlert.id == alert_id, BudgetAlert.tenant_id == tenant_id)
            .first()
        )
        if not alert:
            raise NotFoundError("Budget alert", alert_id)
        if alert.status == BudgetAlertStatus.resolved:
            raise InvalidTransitionError("Budget alert", alert_id, alert.status.value)

        before = alert.status
        alert.status = status
        if status == BudgetAlertStatus.acknowledged:
            alert.acknowledged_by = operator_id
            alert.acknowledged_at = datetime.now()

        self.audit_log_service.record_update(
            action=AuditAction.budget_alert_updated,
            entity_type="budget_alert",
            entity_id=alert.id,
            changed_attribute="status",
            before_value=before,
            after_value=status,
            user_id=operator_id,
            tenant_id=tenant_id,
            project_id=alert.project_id,
        )
        return alert

    def acknowledge(self, *, tenant_id: str, alert_id: str, operator_id: str) -> BudgetAlert:
        return self._transition(
            tenant_id=tenant_id, alert_id=alert_id, status=BudgetAlertStatus.acknowledged, operator_id=operator_id
        )

    def resolve(self, *, tenant_id: str, alert_id: str, operator_id: str) -> BudgetAlert:
        return self._transition(
            tenant_id=tenant_id, alert_id=alert_id, status=BudgetAlertStatus.resolved, operator_id=operator_id
        )
