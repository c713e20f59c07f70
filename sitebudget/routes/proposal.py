# sitebudget/routes/proposal.py
"""
Budget amendments and change orders. Both share the list / detail / decision
endpoints; only their creation bodies differ.
"""
from flask import Blueprint, request

from sitebudget.db.enums import ApprovalStatus
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import (
    current_user,
    invalidate_views,
    ok,
    parse_body,
    publish_approval_events,
    tenant_currency,
)
from sitebudget.schemas.dto.ledger_dto import ProposalDTO
from sitebudget.schemas.requests import (
    CreateBudgetAmendmentRequest,
    CreateChangeOrderRequest,
    ProposalStatusRequest,
)
from sitebudget.services.registry import ServiceRegistry

budget_amendment_bp = Blueprint("budget_amendment", __name__, url_prefix="/api/budget-amendments")
change_order_bp = Blueprint("change_order", __name__, url_prefix="/api/change-orders")


# =========
# Shared handlers
# =========
def _status_filter():
    status = request.args.get("status")
    if not status:
        return None
    try:
        return ApprovalStatus(status)
    except ValueError:
        raise InputError(f"Unknown status '{status}'", details={"field": "status"})


def _serialize(db, service, records, tenant_id):
    currency = tenant_currency(db, tenant_id)
    return [
        ProposalDTO.from_orm_model(
            row["record"],
            currency,
            project_title=row["project_title"],
            proposer_name=row["proposer_name"],
            approver_name=row["approver_name"],
            is_significant=row["is_significant"],
        ).to_json()
        for row in service.enrich(records)
    ]


def _list(service_attr: str):
    project_id = request.args.get("projectId") or None
    status = _status_filter()
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        service = getattr(services, service_attr)
        if project_id:
            services.permissions.get_visible_project(user, project_id)
        records = service.list_records(
            tenant_id=user.company_id,
            project_ids=services.permissions.visible_project_ids(user),
            project_id=project_id,
            status=status,
        )
        return ok(_serialize(db, service, records, user.company_id))


def _detail(service_attr: str, record_id: str):
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        service = getattr(services, service_attr)
        record = service.get_record(tenant_id=user.company_id, record_id=record_id)
        services.permissions.get_visible_project(user, record.project_id)
        return ok(_serialize(db, service, [record], user.company_id)[0])


def _after_create(service, record, tenant_id: str) -> None:
    """Side effects of a new proposal; call only after the session block committed."""
    invalidate_views(tenant_id, f"{service.entity_type}.created")
    publish_approval_events(tenant_id, [{
        "event": "created",
        "record_id": record.id,
        "kind": service.entity_type,
        "project_id": record.project_id,
        "status": record.status.value,
    }])


def _decide(service_attr: str, record_id: str):
    body = parse_body(ProposalStatusRequest)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        service = getattr(services, service_attr)
        if body.status == ApprovalStatus.approved.value:
            record = service.approve(user=user, record_id=record_id, comments=body.comments)
        else:
            record = service.reject(user=user, record_id=record_id, comments=body.comments)
        payload = _serialize(db, service, [record], user.company_id)[0]
        tenant_id = user.company_id
        entity_type = service.entity_type
        project_id = record.project_id

    invalidate_views(tenant_id, f"{entity_type}.{body.status}")
    publish_approval_events(tenant_id, [{
        "event": body.status,
        "record_id": record_id,
        "kind": entity_type,
        "project_id": project_id,
        "status": body.status,
    }])
    return ok(payload)


# =========
# 📈 Budget amendments
# =========
@budget_amendment_bp.route("", methods=["GET"])
def list_budget_amendments():
    return _list("amendments")


@budget_amendment_bp.route("", methods=["POST"])
def create_budget_amendment():
    body = parse_body(CreateBudgetAmendmentRequest)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project = services.permissions.get_visible_project(user, body.project_id)
        record = services.amendments.propose(
            user=user,
            project=project,
            amount_added=body.amount_added,
            reason=body.reason,
        )
        payload = _serialize(db, services.amendments, [record], user.company_id)[0]
        payload["impact"] = services.amendments.preview(project=project, amount=record.amount_added).to_json()

    _after_create(services.amendments, record, user.company_id)
    return ok(payload, 201)


@budget_amendment_bp.route("/<record_id>", methods=["GET"])
def get_budget_amendment(record_id):
    return _detail("amendments", record_id)


@budget_amendment_bp.route("/<record_id>/status", methods=["PATCH"])
def decide_budget_amendment(record_id):
    return _decide("amendments", record_id)


# =========
# 🧾 Change orders
# =========
@change_order_bp.route("", methods=["GET"])
def list_change_orders():
    return _list("change_orders")


@change_order_bp.route("", methods=["POST"])
def create_change_order():
    body = parse_body(CreateChangeOrderRequest)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project = services.permissions.get_visible_project(user, body.project_id)
        record = services.change_orders.propose(
            user=user,
            project=project,
            description=body.description,
            cost_impact=body.cost_impact,
        )
        payload = _serialize(db, services.change_orders, [record], user.company_id)[0]
        payload["impact"] = services.change_orders.preview(project=project, amount=record.cost_impact).to_json()

    _after_create(services.change_orders, record, user.company_id)
    return ok(payload, 201)


@change_order_bp.route("/<record_id>", methods=["GET"])
def get_change_order(record_id):
    return _detail("change_orders", record_id)


@change_order_bp.route("/<record_id>/status", methods=["PATCH"])
def decide_change_order(record_id):
    return _decide("change_orders", record_id)
