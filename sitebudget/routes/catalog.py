# sitebudget/routes/catalog.py
from flask import Blueprint, request

from sitebudget.db.enums import LineItemCategory, UserRole
from sitebudget.db.session import session_scope
from sitebudget.errors import InputError
from sitebudget.routes.guards import (
    current_user,
    invalidate_views,
    ok,
    parse_body,
    require_roles,
    tenant_currency,
)
from sitebudget.schemas.dto.admin_dto import LineItemDTO, MaterialDTO
from sitebudget.schemas.requests import (
    CreateLineItemRequest,
    CreateMaterialRequest,
    UpdateLineItemRequest,
    UpdateMaterialRequest,
)
from sitebudget.services.registry import ServiceRegistry

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# ======================================================
# Line items
# ======================================================
@catalog_bp.route("/line-items", methods=["GET"])
def list_line_items():
    category = request.args.get("category")
    try:
        category = LineItemCategory(category) if category else None
    except ValueError:
        raise InputError(f"Unknown category '{category}'", details={"field": "category"})
    with session_scope() as db:
        user = current_user(db)
        items = ServiceRegistry(db).catalog.list_line_items(tenant_id=user.company_id, category=category)
        return ok([LineItemDTO.from_orm_model(i).to_json() for i in items])


@catalog_bp.route("/line-items", methods=["POST"])
def create_line_item():
    body = parse_body(CreateLineItemRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        item = ServiceRegistry(db).catalog.create_line_item(
            tenant_id=user.company_id,
            name=body.name,
            category=body.category,
            description=body.description,
            operator_id=user.id,
        )
        payload = LineItemDTO.from_orm_model(item).to_json()
    return ok(payload, 201)


@catalog_bp.route("/line-items/<line_item_id>", methods=["PATCH"])
def update_line_item(line_item_id):
    body = parse_body(UpdateLineItemRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        catalog = ServiceRegistry(db).catalog
        item = catalog.update_line_item(
            line_item=catalog.get_line_item(tenant_id=user.company_id, line_item_id=line_item_id),
            changes=body.changes(),
            operator_id=user.id,
        )
        payload = LineItemDTO.from_orm_model(item).to_json()
        tenant_id = user.company_id

    # category totals move when a line item changes category
    invalidate_views(tenant_id, "line_item.updated")
    return ok(payload)


# ======================================================
# Materials
# ======================================================
@catalog_bp.route("/materials", methods=["GET"])
def list_materials():
    with session_scope() as db:
        user = current_user(db)
        materials = ServiceRegistry(db).catalog.list_materials(tenant_id=user.company_id)
        currency = tenant_currency(db, user.company_id)
        return ok([MaterialDTO.from_orm_model(m, currency).to_json() for m in materials])


@catalog_bp.route("/materials", methods=["POST"])
def create_material():
    body = parse_body(CreateMaterialRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        material = ServiceRegistry(db).catalog.create_material(
            tenant_id=user.company_id,
            name=body.name,
            unit=body.unit,
            current_unit_price=body.current_unit_price,
            supplier=body.supplier,
            operator_id=user.id,
        )
        payload = MaterialDTO.from_orm_model(material, tenant_currency(db, user.company_id)).to_json()
    return ok(payload, 201)


@catalog_bp.route("/materials/<material_id>", methods=["PATCH"])
def update_material(material_id):
    body = parse_body(UpdateMaterialRequest)
    with session_scope() as db:
        user = current_user(db)
        require_roles(user, UserRole.admin)
        catalog = ServiceRegistry(db).catalog
        material = catalog.update_material(
            material=catalog.get_material(tenant_id=user.company_id, material_id=material_id),
            changes=body.changes(),
            operator_id=user.id,
        )
        payload = MaterialDTO.from_orm_model(material, tenant_currency(db, user.company_id)).to_json()
    return ok(payload)
