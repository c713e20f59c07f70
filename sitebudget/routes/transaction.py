# sitebudget/routes/transaction.py
from flask import Blueprint, request

from sitebudget.db.enums import TransactionType
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import current_user, invalidate_views, ok, parse_body, tenant_currency
from sitebudget.schemas.dto.ledger_dto import TransactionDTO
from sitebudget.schemas.requests import CreateTransactionRequest
from sitebudget.services.registry import ServiceRegistry

transaction_bp = Blueprint("transaction", __name__, url_prefix="/api/transactions")


@transaction_bp.route("", methods=["GET"])
def list_transactions():
    """?projectId&type&limit"""
    project_id = request.args.get("projectId") or None
    try:
        tx_type = TransactionType(request.args["type"]) if request.args.get("type") else None
        limit = int(request.args["limit"]) if request.args.get("limit") else None
    except ValueError as e:
        raise InputError(str(e), details={"fields": ["type", "limit"]})

    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if project_id:
            services.permissions.get_visible_project(user, project_id)
        transactions = services.transactions.list_transactions(
            tenant_id=user.company_id,
            project_ids=services.permissions.visible_project_ids(user),
            project_id=project_id,
            type=tx_type,
            limit=limit,
        )
        currency = tenant_currency(db, user.company_id)
        return ok([TransactionDTO.from_orm_model(t, currency).to_json() for t in transactions])


@transaction_bp.route("", methods=["POST"])
def create_transaction():
    body = parse_body(CreateTransactionRequest)
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project = services.permissions.get_visible_project(user, body.project_id)
        services.permissions.require_project_mutation(user, project)
        transaction = services.transactions.create_transaction(
            user=user,
            project=project,
            type=body.type,
            amount=body.amount,
            category=body.category,
            description=body.description,
            status=body.status,
        )
        payload = TransactionDTO.from_orm_model(transaction, tenant_currency(db, user.company_id)).to_json()
        tenant_id = user.company_id

    invalidate_views(tenant_id, "transaction.created")
    return ok(payload, 201)
