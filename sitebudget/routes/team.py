# sitebudget/routes/team.py
from flask import Blueprint

from sitebudget.db.enums import UserRole
from sitebudget.db.session import session_scope
from sitebudget.routes.guards import current_user, ok, parse_body, require_roles
from sitebudget.schemas.dto.admin_dto import TeamDTO, TeamMemberDTO
from sitebudget.schemas.requests import AddTeamMemberRequest, CreateTeamRequest, UpdateTeamRequest
from sitebudget.services.registry import ServiceRegistry

team_bp = Blueprint("team", __name__, url_prefix="/api/teams")


@team_bp.route("", methods=["GET"])
def list_teams():
    with session_scope() as db:
        user = current_user(db)
        teams = ServiceRegistry(db).teams.list_teams(tenant_id=user.company_id)
        return ok([TeamDTO.from_orm_model(t).to_json() for t in teams])


@team_bp.route("", methods=["POST"])
def create_team():
    body = parse_body(CreateTeamRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        team = ServiceRegistry(db).teams.create_team(
            tenant_id=user.company_id,
            name=body.name,
            description=body.description,
            leader_id=body.leader_id,
            operator_id=user.id,
        )
        payload = TeamDTO.from_orm_model(team).to_json()
    return ok(payload, 201)


@team_bp.route("/<team_id>", methods=["GET"])
def get_team(team_id):
    with session_scope() as db:
        user = current_user(db)
        team = ServiceRegistry(db).teams.get_team(tenant_id=user.company_id, team_id=team_id)
        return ok(TeamDTO.from_orm_model(team).to_json())


@team_bp.route("/<team_id>", methods=["PATCH", "POST"])
def update_team(team_id):
    body = parse_body(UpdateTeamRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        teams = ServiceRegistry(db).teams
        team = teams.update_team(
            team=teams.get_team(tenant_id=user.company_id, team_id=team_id),
            changes=body.changes(),
            operator_id=user.id,
        )
        payload = TeamDTO.from_orm_model(team).to_json()
    return ok(payload)


@team_bp.route("/<team_id>", methods=["DELETE"])
def delete_team(team_id):
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        teams = ServiceRegistry(db).teams
        teams.delete_team(team=teams.get_team(tenant_id=user.company_id, team_id=team_id), operator_id=user.id)
    return ok()


@team_bp.route("/<team_id>/members", methods=["POST"])
def add_member(team_id):
    body = parse_body(AddTeamMemberRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        teams = ServiceRegistry(db).teams
        member = teams.add_member(
            team=teams.get_team(tenant_id=user.company_id, team_id=team_id),
            user_id=body.user_id,
            role_in_team=body.role_in_team,
            operator_id=user.id,
        )
        payload = TeamMemberDTO.from_orm_model(member).to_json()
    return ok(payload, 201)


@team_bp.route("/<team_id>/members/<user_id>", methods=["DELETE"])
def remove_member(team_id, user_id):
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        teams = ServiceRegistry(db).teams
        teams.remove_member(
            team=teams.get_team(tenant_id=user.company_id, team_id=team_id),
            user_id=user_id,
            operator_id=user.id,
        )
    return ok()
