# sitebudget/routes/project.py
from flask import Blueprint, request

from sitebudget.db.enums import UserRole
from sitebudget.db.session import session_scope
from sitebudget.routes.analytics import project_analytics_response
from sitebudget.routes.guards import (
    current_user,
    invalidate_views,
    ok,
    parse_body,
    require_roles,
    tenant_currency,
)
from sitebudget.schemas.dto.ledger_dto import MoneyDTO, ProjectDTO
from sitebudget.schemas.requests import (
    CreateProjectRequest,
    ImpactPreviewRequest,
    UpdateProjectRequest,
)
from sitebudget.services.budget_impact import preview_budget_impact
from sitebudget.services.registry import ServiceRegistry

project_bp = Blueprint("project", __name__, url_prefix="/api/projects")


@project_bp.route("", methods=["GET"])
def list_projects():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        projects = services.projects.list_projects(
            tenant_id=user.company_id,
            project_ids=services.permissions.visible_project_ids(user),
            status=request.args.get("status") or None,
        )
        currency = tenant_currency(db, user.company_id)
        return ok([ProjectDTO.from_orm_model(p, currency).to_json() for p in projects])


@project_bp.route("", methods=["POST"])
def create_project():
    body = parse_body(CreateProjectRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        services = ServiceRegistry(db)
        manager_id = user.id
        if body.manager_id:
            manager_id = services.users.get_user_in_company(user_id=body.manager_id, company_id=user.company_id).id
        project = services.projects.create_project(
            tenant_id=user.company_id,
            title=body.title,
            budget=body.budget,
            start_date=body.start_date,
            end_date=body.end_date,
            manager_id=manager_id,
            description=body.description,
            revenue=body.revenue,
            status=body.status,
        )
        payload = ProjectDTO.from_orm_model(project, tenant_currency(db, user.company_id)).to_json()
        tenant_id = user.company_id

    invalidate_views(tenant_id, "project.created")
    return ok(payload, 201)


@project_bp.route("/<project_id>", methods=["GET"])
def get_project(project_id):
    with session_scope() as db:
        user = current_user(db)
        project = ServiceRegistry(db).permissions.get_visible_project(user, project_id)
        return ok(ProjectDTO.from_orm_model(project, tenant_currency(db, user.company_id)).to_json())


@project_bp.route("/<project_id>", methods=["PATCH"])
def update_project(project_id):
    body = parse_body(UpdateProjectRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        services = ServiceRegistry(db)
        changes = body.changes()
        if changes.get("manager_id"):
            services.users.get_user_in_company(user_id=changes["manager_id"], company_id=user.company_id)
        project = services.projects.update_project(
            project=services.projects.get_project(tenant_id=user.company_id, project_id=project_id),
            changes=changes,
            operator_id=user.id,
        )
        payload = ProjectDTO.from_orm_model(project, tenant_currency(db, user.company_id)).to_json()
        tenant_id = user.company_id

    invalidate_views(tenant_id, "project.updated")
    return ok(payload)


@project_bp.route("/<project_id>/analytics", methods=["GET"])
def project_analytics(project_id):
    return project_analytics_response(project_id)


@project_bp.route("/<project_id>/budget-impact", methods=["POST"])
def budget_impact(project_id):
    '''
    Preview of an amendment / change order before it is proposed.
    Body: {"amount": "-20000", "kind": "amendment" | "change_order"}
    '''
    body = parse_body(ImpactPreviewRequest)
    with session_scope() as db:
        user = current_user(db)
        project = ServiceRegistry(db).permissions.get_visible_project(user, project_id)
        impact = preview_budget_impact(project.budget, body.amount, project.consumed_amount, body.kind)
        currency = tenant_currency(db, user.company_id)

        payload = impact.to_json()
        for field in ("currentBudget", "proposedAmount", "newBudget", "currentSpent", "remainingAfter"):
            payload[field] = MoneyDTO.of(payload[field], currency).to_json()
        return ok(payload)
