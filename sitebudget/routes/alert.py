# sitebudget/routes/alert.py
from flask import Blueprint, request

from sitebudget.db.enums import BudgetAlertStatus, UserRole
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import current_user, ok, require_roles, tenant_currency
from sitebudget.schemas.dto.ledger_dto import BudgetAlertDTO
from sitebudget.services.registry import ServiceRegistry

alert_bp = Blueprint("alert", __name__, url_prefix="/api/budget-alerts")

ALERT_HANDLERS = (UserRole.admin, UserRole.manager, UserRole.team_leader)


@alert_bp.route("", methods=["GET"])
def list_alerts():
    status = request.args.get("status")
    try:
        status = BudgetAlertStatus(status) if status else None
    except ValueError:
        raise InputError(f"Unknown alert status '{status}'", details={"field": "status"})

    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        alerts = services.alerts.list_alerts(
            tenant_id=user.company_id,
            status=status,
            project_ids=services.permissions.visible_project_ids(user),
        )
        currency = tenant_currency(db, user.company_id)
        return ok([BudgetAlertDTO.from_orm_model(a, currency).to_json() for a in alerts])


def _transition(alert_id: str, action: str):
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, *ALERT_HANDLERS)
        services = ServiceRegistry(db)
        alert = getattr(services.alerts, action)(
            tenant_id=user.company_id,
            alert_id=alert_id,
            operator_id=user.id,
        )
        services.permissions.get_visible_project(user, alert.project_id)
        payload = BudgetAlertDTO.from_orm_model(alert, tenant_currency(db, user.company_id)).to_json()
    return ok(payload)


@alert_bp.route("/<alert_id>/acknowledge", methods=["POST"])
def acknowledge(alert_id):
    return _transition(alert_id, "acknowledge")


@alert_bp.route("/<alert_id>/resolve", methods=["POST"])
def resolve(alert_id):
    return _transition(alert_id, "resolve")
