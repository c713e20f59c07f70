# sitebudget/routes/approval.py
import queue

from flask import Blueprint, Response, current_app, request, stream_with_context

from sitebudget.db.enums import WorkflowTable
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.logger import get_logger
from sitebudget.routes.guards import (
    current_user,
    invalidate_views,
    ok,
    parse_body,
    publish_approval_events,
    tenant_currency,
    visibility_key,
)
from sitebudget.schemas.dto.ledger_dto import PendingApprovalDTO
from sitebudget.schemas.requests import ApproveRequest, RejectRequest
from sitebudget.services import view_cache as views
from sitebudget.services.registry import ServiceRegistry

logger = get_logger(__name__)

approval_bp = Blueprint("approval", __name__, url_prefix="/api/approvals")

# clients fall back to polling at this cadence when the stream drops
STREAM_RETRY_MS = 30000


@approval_bp.route("/pending", methods=["GET"])
def list_pending():
    """?table=cost_allocations|budget_amendments|change_orders"""
    table = request.args.get("table")
    try:
        table = WorkflowTable(table) if table else None
    except ValueError:
        raise InputError(f"Unknown approval table '{table}'", details={"field": "table"})

    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_ids = services.permissions.visible_project_ids(user)
        currency = tenant_currency(db, user.company_id)

        data = current_app.extensions["view_cache"].get_or_compute(
            tenant_id=user.company_id,
            view=views.PENDING_APPROVALS,
            params=f"{visibility_key(project_ids)}:{table.value if table else '-'}",
            compute=lambda: [
                PendingApprovalDTO.from_orm_model(row, currency).to_json()
                for row in services.approvals.list_pending(
                    tenant_id=user.company_id, table=table, project_ids=project_ids
                )
            ],
        )
        return ok(data)


def _decision(record_id: str, decision: str, comments):
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if decision == "approved":
            table, record = services.approvals.approve(user=user, record_id=record_id, comments=comments)
        else:
            table, record = services.approvals.reject(user=user, record_id=record_id, comments=comments)
        kind = services.approvals.services[table].entity_type
        tenant_id = user.company_id
        payload = {
            "kind": table.value,
            "recordId": record.id,
            "projectId": record.project_id,
            "status": record.status.value,
        }

    invalidate_views(tenant_id, f"{kind}.{decision}")
    publish_approval_events(tenant_id, [{
        "event": decision,
        "record_id": payload["recordId"],
        "kind": kind,
        "project_id": payload["projectId"],
        "status": payload["status"],
    }])
    return ok(payload)


@approval_bp.route("/<record_id>/approve", methods=["POST"])
def approve(record_id):
    body = parse_body(ApproveRequest)
    return _decision(record_id, "approved", body.comments)


@approval_bp.route("/<record_id>/reject", methods=["POST"])
def reject(record_id):
    body = parse_body(RejectRequest)
    return _decision(record_id, "rejected", body.comments)


@approval_bp.route("/stream", methods=["GET"])
def stream():
    '''
    Server-sent events of the caller's tenant: every proposal creation and
    decision. The first frame sets the client's reconnect delay to the polling
    cadence; comment frames keep idle connections open.
    '''
    with session_scope() as db:
        tenant_id = current_user(db).company_id

    bus = current_app.extensions["approval_event_bus"]
    heartbeat = current_app.config.get("APPROVAL_STREAM_HEARTBEAT_SECONDS", 15)
    subscriber = bus.subscribe(tenant_id)

    def generate():
        try:
            yield f"retry: {STREAM_RETRY_MS}\n\n"
            while True:
                try:
                    payload = subscriber.get(timeout=heartbeat)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield bus.format_sse(payload)
        finally:
            bus.unsubscribe(tenant_id, subscriber)
            logger.debug(f"Approval stream closed for tenant {tenant_id}")

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
