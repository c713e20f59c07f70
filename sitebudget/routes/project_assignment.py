# sitebudget/routes/project_assignment.py
from flask import Blueprint, request

from sitebudget.db.enums import UserRole
from sitebudget.db.session import session_scope
from sitebudget.routes.guards import current_user, ok, parse_body, require_roles
from sitebudget.schemas.dto.admin_dto import ProjectAssignmentDTO
from sitebudget.schemas.requests import ProjectAssignmentRequest
from sitebudget.services.permission_service import TENANT_WIDE_ROLES
from sitebudget.services.registry import ServiceRegistry

project_assignment_bp = Blueprint("project_assignment", __name__, url_prefix="/api/project-assignments")


@project_assignment_bp.route("", methods=["GET"])
def list_assignments():
    """Tenant-wide roles see every assignment, everyone else their own."""
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        project_id = request.args.get("projectId") or None
        if project_id:
            services.permissions.get_visible_project(user, project_id)
        assignments = services.assignments.list_assignments(tenant_id=user.company_id, project_id=project_id)
        if user.role not in TENANT_WIDE_ROLES:
            assignments = [a for a in assignments if a.user_id == user.id]
        return ok([ProjectAssignmentDTO.from_orm_model(a).to_json() for a in assignments])


@project_assignment_bp.route("", methods=["POST"])
def create_assignment():
    body = parse_body(ProjectAssignmentRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        services = ServiceRegistry(db)
        project = services.projects.get_project(tenant_id=user.company_id, project_id=body.project_id)
        assignee = services.users.get_user_in_company(user_id=body.user_id, company_id=user.company_id)
        assignment = services.assignments.assign(
            tenant_id=user.company_id,
            project_id=project.id,
            user=assignee,
            operator_id=user.id,
        )
        payload = ProjectAssignmentDTO.from_orm_model(assignment).to_json()
    return ok(payload, 201)


@project_assignment_bp.route("/<project_id>/<user_id>", methods=["DELETE"])
def delete_assignment(project_id, user_id):
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        ServiceRegistry(db).assignments.unassign(
            tenant_id=user.company_id,
            project_id=project_id,
            user_id=user_id,
            operator_id=user.id,
        )
    return ok()
