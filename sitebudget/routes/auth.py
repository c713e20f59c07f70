# sitebudget/routes/auth.py
from flask import Blueprint, session

from sitebudget.db.session import get_session, session_scope
from sitebudget.errors import LedgerError
from sitebudget.logger import get_logger
from sitebudget.routes.guards import current_user, ok, parse_body, tenant_currency
from sitebudget.schemas.dto.admin_dto import UserDTO
from sitebudget.schemas.requests import ChangePasswordRequest, LoginRequest
from sitebudget.services.registry import ServiceRegistry

logger = get_logger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.route("/login", methods=["POST"])
def login():
    body = parse_body(LoginRequest)

    db = get_session()
    try:
        services = ServiceRegistry(db)
        user = services.users.authenticate(
            email=body.email,
            password=body.password,
            company_id=body.company_id,
        )
        payload = UserDTO.from_orm_model(user).to_json()
        currency = tenant_currency(db, user.company_id)
        db.commit()
    except LedgerError:
        # failed-login counter and audit rows must survive the refusal
        db.commit()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    session.clear()
    session["user_id"] = payload["id"]
    session["company_id"] = payload["companyId"]
    session["role"] = payload["role"]
    logger.info(f"User {payload['id']} logged in")
    return ok({"user": payload, "currency": currency})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    user_id = session.get("user_id")
    session.clear()
    if user_id:
        logger.info(f"User {user_id} logged out")
    return ok()


@auth_bp.route("/auth/user", methods=["GET"])
def auth_user():
    with session_scope() as db:
        user = current_user(db)
        return ok({
            "user": UserDTO.from_orm_model(user).to_json(),
            "currency": tenant_currency(db, user.company_id),
        })


@auth_bp.route("/auth/change-password", methods=["POST"])
def change_password():
    body = parse_body(ChangePasswordRequest)
    with session_scope() as db:
        user = current_user(db)
        ServiceRegistry(db).users.change_password(
            user=user,
            current_password=body.current_password,
            new_password=body.new_password,
        )
    return ok()
