# sitebudget/routes/user.py
from flask import Blueprint, request

from sitebudget.db.enums import UserRole
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import current_user, ok, parse_body, require_roles
from sitebudget.schemas.dto.admin_dto import UserDTO
from sitebudget.schemas.requests import (
    CreateUserRequest,
    UpdateUserRoleRequest,
    UpdateUserStatusRequest,
)
from sitebudget.services.registry import ServiceRegistry

user_bp = Blueprint("user", __name__, url_prefix="/api/users")


@user_bp.route("", methods=["GET"])
def list_users():
    """Users of the caller's company (admin / manager)."""
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin, UserRole.manager)
        role = request.args.get("role")
        try:
            role = UserRole(role) if role else None
        except ValueError:
            raise InputError(f"Unknown role '{role}'", details={"field": "role"})
        users = ServiceRegistry(db).users.list_users(company_id=user.company_id, role=role)
        return ok([UserDTO.from_orm_model(u).to_json() for u in users])


@user_bp.route("", methods=["POST"])
def create_user():
    body = parse_body(CreateUserRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        if body.role == UserRole.console_manager:
            raise InputError("console_manager can not be created inside a company", details={"field": "role"})
        created = ServiceRegistry(db).users.create_user(
            company_id=user.company_id,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            status=body.status,
            manager_id=body.manager_id,
            operator_id=user.id,
        )
        payload = UserDTO.from_orm_model(created).to_json()
    return ok(payload, 201)


@user_bp.route("/<user_id>/role", methods=["PATCH"])
def update_role(user_id):
    body = parse_body(UpdateUserRoleRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        services = ServiceRegistry(db)
        target = services.users.get_user_in_company(user_id=user_id, company_id=user.company_id)
        target = services.users.update_role(user=target, role=body.role, operator_id=user.id)
        payload = UserDTO.from_orm_model(target).to_json()
    return ok(payload)


@user_bp.route("/<user_id>/status", methods=["PATCH"])
def update_status(user_id):
    body = parse_body(UpdateUserStatusRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        services = ServiceRegistry(db)
        target = services.users.get_user_in_company(user_id=user_id, company_id=user.company_id)
        target = services.users.update_status(user=target, status=body.status, operator_id=user.id)
        payload = UserDTO.from_orm_model(target).to_json()
    return ok(payload)
