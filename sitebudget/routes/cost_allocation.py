# sitebudget/routes/cost_allocation.py
from flask import Blueprint, request

from sitebudget.db.session import session_scope
from sitebudget.routes.guards import (
    current_user,
    invalidate_views,
    ok,
    parse_args,
    parse_body,
    publish_approval_events,
    tenant_currency,
)
from sitebudget.schemas.dto.ledger_dto import BudgetAlertDTO, CostAllocationDTO
from sitebudget.schemas.requests import CostAllocationFilter, CreateCostAllocationRequest
from sitebudget.services.registry import ServiceRegistry

cost_allocation_bp = Blueprint("cost_allocation", __name__, url_prefix="/api")


@cost_allocation_bp.route("/cost-allocations", methods=["GET"])
def list_cost_allocations():
    project_id = request.args.get("projectId") or None
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if project_id:
            services.permissions.get_visible_project(user, project_id)
        allocations = services.cost_allocations.list_allocations(
            tenant_id=user.company_id,
            project_ids=services.permissions.visible_project_ids(user),
            project_id=project_id,
        )
        currency = tenant_currency(db, user.company_id)
        return ok([CostAllocationDTO.from_orm_model(a, currency).to_json() for a in allocations])


@cost_allocation_bp.route("/cost-allocations-filtered", methods=["GET"])
def list_cost_allocations_filtered():
    """
    ?status&projectId&startDate&endDate&categories=foundation,electrical
    The tenant always comes from the session, a tenantId argument is ignored.
    """
    filters = parse_args(CostAllocationFilter)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if filters.project_id:
            services.permissions.get_visible_project(user, filters.project_id)
        allocations = services.cost_allocations.list_allocations(
            tenant_id=user.company_id,
            project_ids=services.permissions.visible_project_ids(user),
            project_id=filters.project_id,
            status=filters.status,
            start_date=filters.start_date,
            end_date=filters.end_date,
            categories=filters.categories,
        )
        currency = tenant_currency(db, user.company_id)
        return ok([CostAllocationDTO.from_orm_model(a, currency).to_json() for a in allocations])


@cost_allocation_bp.route("/cost-allocations/<allocation_id>", methods=["GET"])
def get_cost_allocation(allocation_id):
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        allocation = services.cost_allocations.get_record(tenant_id=user.company_id, record_id=allocation_id)
        services.permissions.get_visible_project(user, allocation.project_id)
        return ok(CostAllocationDTO.from_orm_model(allocation, tenant_currency(db, user.company_id)).to_json())


@cost_allocation_bp.route("/cost-allocations", methods=["POST"])
def create_cost_allocation():
    body = parse_body(CreateCostAllocationRequest)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project = services.permissions.get_visible_project(user, body.project_id)
        alerts_before = {a.id for a in services.alerts.list_alerts(tenant_id=user.company_id, project_ids=[project.id])}

        allocation = services.cost_allocations.create(
            user=user,
            project=project,
            line_item_id=body.line_item_id,
            labour_cost=body.labour_cost,
            material_allocations=[row.model_dump() for row in body.material_allocations],
            quantity=body.quantity,
            change_order_id=body.change_order_id,
            date_incurred=body.date_incurred,
        )
        currency = tenant_currency(db, user.company_id)
        new_alerts = [
            BudgetAlertDTO.from_orm_model(a, currency).to_json()
            for a in services.alerts.list_alerts(tenant_id=user.company_id, project_ids=[project.id])
            if a.id not in alerts_before
        ]
        payload = CostAllocationDTO.from_orm_model(allocation, currency).to_json()
        payload["alerts"] = new_alerts
        tenant_id = user.company_id

    invalidate_views(tenant_id, "cost_allocation.created")
    publish_approval_events(tenant_id, [{
        "event": "created",
        "record_id": allocation.id,
        "kind": "cost_allocation",
        "project_id": allocation.project_id,
        "status": allocation.status.value,
    }])
    return ok(payload, 201)
