# sitebudget/routes/analytics.py
"""
Aggregate read views. Each is memoized in the ViewCache per tenant and
visibility scope, and dropped by the writes that change it.
"""
from flask import Blueprint, current_app, request

from sitebudget.db.enums import ApprovalStatus, HistoryEntryType
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import current_user, ok, tenant_currency, visibility_key
from sitebudget.schemas.dto.ledger_dto import (
    AnalyticsDTO,
    BudgetSummaryRowDTO,
    CategorySpendingDTO,
    LabourMaterialSplitDTO,
    MoneyDTO,
)
from sitebudget.services import view_cache as views
from sitebudget.services.registry import ServiceRegistry

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api")


def _cached(*, tenant_id: str, view: str, params: str, compute):
    return current_app.extensions["view_cache"].get_or_compute(
        tenant_id=tenant_id,
        view=view,
        params=params,
        compute=compute,
    )


def project_analytics_response(project_id: str):
    """Shared by /api/analytics/projects/<id> and its /api/projects/<id>/analytics alias."""
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project = services.permissions.get_visible_project(user, project_id)
        currency = tenant_currency(db, user.company_id)

        data = _cached(
            tenant_id=user.company_id,
            view=views.PROJECT_ANALYTICS,
            params=project.id,
            compute=lambda: AnalyticsDTO.from_orm_model(
                services.analytics.project_analytics(project=project), currency
            ).to_json(),
        )
        return ok(data)


@analytics_bp.route("/analytics/tenant", methods=["GET"])
def tenant_analytics():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        data = _cached(
            tenant_id=user.company_id,
            view=views.TENANT_ANALYTICS,
            params=visibility_key(project_ids),
            compute=lambda: AnalyticsDTO.from_orm_model(
                services.analytics.tenant_analytics(tenant_id=user.company_id, project_ids=project_ids),
                currency,
            ).to_json(),
        )
        return ok(data)


@analytics_bp.route("/analytics/projects/<project_id>", methods=["GET"])
def project_analytics(project_id):
    return project_analytics_response(project_id)


@analytics_bp.route("/analytics/budget-summary", methods=["GET"])
def budget_summary():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        data = _cached(
            tenant_id=user.company_id,
            view=views.BUDGET_SUMMARY,
            params=visibility_key(project_ids),
            compute=lambda: [
                BudgetSummaryRowDTO.from_orm_model(row, currency).to_json()
                for row in services.analytics.budget_summary(tenant_id=user.company_id, project_ids=project_ids)
            ],
        )
        return ok(data)


@analytics_bp.route("/analytics/category-spending", methods=["GET"])
def category_spending():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        data = _cached(
            tenant_id=user.company_id,
            view=views.CATEGORY_SPENDING,
            params=visibility_key(project_ids),
            compute=lambda: [
                CategorySpendingDTO.from_orm_model(row, currency).to_json()
                for row in services.analytics.category_spending(tenant_id=user.company_id, project_ids=project_ids)
            ],
        )
        return ok(data)


@analytics_bp.route("/analytics/labour-material-split", methods=["GET"])
def labour_material_split():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        data = _cached(
            tenant_id=user.company_id,
            view=views.LABOUR_MATERIAL_SPLIT,
            params=visibility_key(project_ids),
            compute=lambda: LabourMaterialSplitDTO.from_orm_model(
                services.analytics.labour_material_split(tenant_id=user.company_id, project_ids=project_ids),
                currency,
            ).to_json(),
        )
        return ok(data)


@analytics_bp.route("/budget-history", methods=["GET"])
def budget_history():
    """
    ?projectId&type=initial|amendment|change_order&status=draft|pending|approved|rejected
    """
    project_id = request.args.get("projectId")
    try:
        entry_type = HistoryEntryType(request.args["type"]) if request.args.get("type") else None
        status = ApprovalStatus(request.args["status"]) if request.args.get("status") else None
    except ValueError as e:
        raise InputError(str(e), details={"fields": ["type", "status"]})

    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if project_id:
            project_ids = [services.permissions.get_visible_project(user, project_id).id]
        else:
            project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        def compute():
            rows = []
            for entry in services.history.get_history(
                tenant_id=user.company_id,
                project_ids=project_ids,
                type=entry_type,
                status=status,
            ):
                row = entry.to_json()
                row["amount"] = MoneyDTO.of(entry.amount, currency).to_json()
                row["runningTotal"] = MoneyDTO.of(entry.running_total, currency).to_json()
                rows.append(row)
            return rows

        params = f"{visibility_key(project_ids)}:{entry_type.value if entry_type else '-'}:{status.value if status else '-'}"
        data = _cached(tenant_id=user.company_id, view=views.BUDGET_HISTORY, params=params, compute=compute)
        return ok(data)
