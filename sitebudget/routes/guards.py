# sitebudget/routes/guards.py
"""
Helpers shared by every blueprint: who is calling, body parsing, the JSON
envelope and the after-commit side effects (view invalidation, approval events).
"""
import hashlib
from typing import Any, Iterable, List, Optional, Type, TypeVar

from flask import current_app, jsonify, request, session
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sitebudget.db.enums import UserRole, UserStatus
from sitebudget.errors import AuthRequiredError, PermissionDeniedError
from sitebudget.logger import get_logger
from sitebudget.models.company import Company
from sitebudget.models.user import User

logger = get_logger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


# =========
# Caller
# =========
def current_user(db: Session) -> User:
    """
    The logged-in, active user of this request.

    :raises AuthRequiredError: no session, or the session user is gone / inactive
    """
    delay = current_app.config.get("LOGIN_REDIRECT_DELAY_MS", 500)
    user_id = session.get("user_id")
    if not user_id:
        raise AuthRequiredError(redirect_after_ms=delay)
    user = db.get(User, user_id)
    if user is None or user.status != UserStatus.active:
        session.clear()
        raise AuthRequiredError("Session is no longer valid", redirect_after_ms=delay)
    return user


def require_roles(user: User, *roles: UserRole) -> None:
    if user.role not in roles:
        raise PermissionDeniedError(
            f"Role '{user.role.value}' may not perform this action",
            granted_by=[role.value for role in roles],
        )


def tenant_currency(db: Session, tenant_id: str) -> str:
    company = db.get(Company, tenant_id)
    if company is None or not company.currency:
        return current_app.config.get("DEFAULT_CURRENCY", "NGN")
    return company.currency


# =========
# Input / output
# =========
def parse_body(model: Type[RequestT]) -> RequestT:
    return model.model_validate(request.get_json(silent=True) or {})


def parse_args(model: Type[RequestT]) -> RequestT:
    return model.model_validate(request.args.to_dict())


def ok(data: Any = None, status: int = 200, **extra):
    body = {"ok": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def visibility_key(project_ids: Optional[List[str]]) -> str:
    """Cache key part for one visibility scope, so users seeing the same projects share entries."""
    if project_ids is None:
        return "all"
    digest = hashlib.sha1(",".join(sorted(project_ids)).encode("utf-8")).hexdigest()
    return f"scope-{digest[:16]}"


# =========
# After commit
# =========
def invalidate_views(tenant_id: str, *operations: str) -> None:
    view_cache = current_app.extensions["view_cache"]
    for operation in operations:
        view_cache.invalidate(tenant_id, operation)


def publish_approval_events(tenant_id: str, events: Iterable[dict]) -> None:
    bus = current_app.extensions["approval_event_bus"]
    for event in events:
        bus.publish(tenant_id, **event)
