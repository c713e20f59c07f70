# sitebudget/routes/audit.py
from flask import Blueprint, request

from sitebudget.db.enums import AuditAction, UserRole
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import current_user, ok, require_roles
from sitebudget.schemas.dto.admin_dto import AuditLogDTO
from sitebudget.services.registry import ServiceRegistry

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-logs")

MAX_PER_PAGE = 200


@audit_bp.route("", methods=["GET"])
def list_logs():
    """Audit log of the caller's company, newest first (admin)."""
    project_id = request.args.get("projectId", "").strip() or None
    user_id = request.args.get("userId", "").strip() or None
    action = request.args.get("action", "").strip() or None
    try:
        action = AuditAction(action) if action else None
        page = int(request.args.get("page", 1))
        per_page = min(int(request.args.get("perPage", 50)), MAX_PER_PAGE)
    except ValueError as e:
        raise InputError(str(e), details={"fields": ["action", "page", "perPage"]})

    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        rows, total = ServiceRegistry(db).audit_log.list_logs(
            tenant_id=user.company_id,
            project_id=project_id,
            action=action,
            user_id=user_id,
            page=page,
            per_page=max(per_page, 1),
        )
        return ok(
            [AuditLogDTO.from_orm_model(r).to_json() for r in rows],
            pagination={"page": max(page, 1), "perPage": max(per_page, 1), "total": total},
        )
