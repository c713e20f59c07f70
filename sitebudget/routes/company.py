# sitebudget/routes/company.py
from flask import Blueprint

from sitebudget.db.enums import UserRole
from sitebudget.db.session import session_scope
from sitebudget.errors import NotFoundError, PermissionDeniedError
from sitebudget.routes.guards import current_user, ok, parse_body, require_roles
from sitebudget.schemas.dto.admin_dto import CompanyDTO, UserDTO
from sitebudget.schemas.requests import (
    CompanyPasswordRequest,
    CreateCompanyRequest,
    PopulateIndustryRequest,
    UpdateCompanyRequest,
)
from sitebudget.services.registry import ServiceRegistry

company_bp = Blueprint("company", __name__, url_prefix="/api/companies")

# fields only the console manager may change
PLATFORM_FIELDS = ("status", "subscription_plan")


def _own_company_or_console(user, company_id: str) -> None:
    '''
    Console managers reach every company, admins only their own.
    Another tenant's company is reported as missing.
    '''
    if user.role == UserRole.console_manager:
        return
    require_roles(user, UserRole.admin, UserRole.console_manager)
    if user.company_id != company_id:
        raise NotFoundError("Company", company_id)


@company_bp.route("", methods=["GET"])
def list_companies():
    with session_scope() as db:
        user = current_user(db)
        services = ServiceRegistry(db)
        if user.role == UserRole.console_manager:
            companies = services.companies.list_companies()
        else:
            require_roles(user, UserRole.admin, UserRole.console_manager)
            companies = [services.companies.get_company(user.company_id)]
        return ok([CompanyDTO.from_orm_model(c).to_json() for c in companies])


@company_bp.route("", methods=["POST"])
def create_company():
    body = parse_body(CreateCompanyRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.console_manager)
        company, admin = ServiceRegistry(db).companies.create_company(
            name=body.name,
            email=body.email,
            admin_email=body.admin_email,
            admin_password=body.admin_password,
            admin_first_name=body.admin_first_name,
            admin_last_name=body.admin_last_name,
            phone=body.phone,
            address=body.address,
            industry=body.industry,
            subscription_plan=body.subscription_plan,
            currency=body.currency,
            operator_id=user.id,
        )
        payload = {
            "company": CompanyDTO.from_orm_model(company).to_json(),
            "admin": UserDTO.from_orm_model(admin).to_json(),
        }
    return ok(payload, 201)


@company_bp.route("/<company_id>", methods=["GET"])
def get_company(company_id):
    with session_scope() as db:
        user = current_user(db)
        _own_company_or_console(user, company_id)
        company = ServiceRegistry(db).companies.get_company(company_id)
        return ok(CompanyDTO.from_orm_model(company).to_json())


@company_bp.route("/<company_id>", methods=["PATCH"])
def update_company(company_id):
    body = parse_body(UpdateCompanyRequest)
    with session_scope() as db:
        user = current_user(db)
        _own_company_or_console(user, company_id)
        changes = body.changes()
        if user.role != UserRole.console_manager:
            blocked = [field for field in PLATFORM_FIELDS if field in changes]
            if blocked:
                raise PermissionDeniedError(
                    f"Only the console manager may change {', '.join(blocked)}",
                    granted_by=[UserRole.console_manager.value],
                )
        services = ServiceRegistry(db)
        company = services.companies.update_company(
            company=services.companies.get_company(company_id),
            changes=changes,
            operator_id=user.id,
        )
        payload = CompanyDTO.from_orm_model(company).to_json()
    return ok(payload)


@company_bp.route("/<company_id>/change-password", methods=["POST"])
def change_admin_password(company_id):
    body = parse_body(CompanyPasswordRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.console_manager)
        admin = ServiceRegistry(db).companies.change_admin_password(
            company_id=company_id,
            new_password=body.new_password,
            operator_id=user.id,
        )
        payload = {"adminId": admin.id, "mustChangePassword": admin.must_change_password}
    return ok(payload)


@company_bp.route("/<company_id>/populate-industry", methods=["POST"])
def populate_industry(company_id):
    body = parse_body(PopulateIndustryRequest)
    with session_scope() as db:
        user = current_user(db)
        _own_company_or_console(user, company_id)
        services = ServiceRegistry(db)
        result = services.companies.populate_industry(
            company=services.companies.get_company(company_id),
            industry=body.industry,
            operator_id=user.id,
        )
    return ok({
        "lineItemsCreated": result["line_items_created"],
        "materialsCreated": result["materials_created"],
    })
