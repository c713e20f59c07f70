# sitebudget/tests/test_cost_allocation_service.py
from datetime import datetime
from decimal import Decimal

import pytest

from sitebudget.db.enums import (
    ApprovalStatus,
    BudgetAlertStatus,
    BudgetAlertType,
    LineItemCategory,
    WorkflowTable,
)
from sitebudget.errors import (
    BusinessRuleError,
    InputError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from sitebudget.models.approval_workflow import ApprovalWorkflow
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.registry import ServiceRegistry


@pytest.fixture
def ctx(db, tenant):
    services = ServiceRegistry(db)
    return {
        "services": services,
        "admin": db.get(User, tenant.admin_id),
        "leader": db.get(User, tenant.leader_id),
        "outsider": db.get(User, tenant.other_leader_id),
        "project": db.get(Project, tenant.project_id),
        "line_item_id": tenant.line_item_id,
        "material_id": tenant.material_id,
    }


def _allocate(ctx, labour, materials=(), user="leader", project=None):
    return ctx["services"].cost_allocations.create(
        user=ctx[user],
        project=project or ctx["project"],
        line_item_id=ctx["line_item_id"],
        labour_cost=labour,
        material_allocations=[
            {"material_id": ctx["material_id"], "quantity": qty, "unit_price": price}
            for qty, price in materials
        ],
    )


def _small_project(ctx, budget):
    return ctx["services"].projects.create_project(
        tenant_id=ctx["admin"].company_id,
        title="Gatehouse",
        budget=Decimal(budget),
        start_date=datetime(2026, 2, 1),
        end_date=datetime(2026, 6, 30),
        manager_id=ctx["admin"].id,
    )


def test_labour_and_materials_end_to_end(ctx):
    allocation = _allocate(ctx, Decimal("500"), [(Decimal("10"), Decimal("25"))])

    assert allocation.material_cost == Decimal("250")
    assert allocation.total_cost == Decimal("750")
    assert allocation.status == ApprovalStatus.approved
    assert len(allocation.material_allocations) == 1
    assert allocation.material_allocations[0].total == Decimal("250")
    assert ctx["project"].consumed_amount == Decimal("750")


@pytest.mark.parametrize(
    "labour, materials, expected",
    [
        ("0.01", [], "0.01"),
        ("0", [("4", "12.50")], "50.00"),
        ("1234.56", [("3", "19.99"), ("2.5", "4.40")], "1305.53"),
    ],
)
def test_total_is_labour_plus_material_rows(ctx, labour, materials, expected):
    allocation = _allocate(ctx, labour, materials)

    rows_total = sum((row.quantity * row.unit_price for row in allocation.material_allocations), Decimal("0"))
    assert allocation.material_cost == rows_total
    assert allocation.total_cost == allocation.labour_cost + rows_total
    assert allocation.total_cost == Decimal(expected)


def test_zero_labour_without_materials_is_rejected(ctx):
    with pytest.raises(BusinessRuleError):
        _allocate(ctx, "0")
    assert ctx["project"].consumed_amount == Decimal("0")


@pytest.mark.parametrize(
    "labour, materials",
    [
        ("-1", []),
        ("100", [("0", "25")]),
        ("100", [("1", "0")]),
        ("abc", []),
    ],
)
def test_invalid_amounts(ctx, labour, materials):
    with pytest.raises(InputError):
        _allocate(ctx, labour, materials)


@pytest.mark.parametrize(
    "labour, materials, field",
    [
        ("0", [("2.5", "12.35")], "materialAllocations[0].quantity"),
        ("10.005", [], "labourCost"),
        ("0", [("1", "3.999")], "materialAllocations[0].unitPrice"),
        ("0", [("0.125", "8")], "materialAllocations[0].quantity"),
    ],
)
def test_sub_cent_figures_are_refused_not_rounded(ctx, labour, materials, field):
    with pytest.raises(InputError) as exc:
        _allocate(ctx, labour, materials)
    assert exc.value.details["field"] == field
    assert ctx["project"].consumed_amount == Decimal("0")


def test_fractional_quantity_with_exact_total(ctx):
    allocation = _allocate(ctx, "0", [("2.5", "12.40")])

    assert allocation.material_allocations[0].total == Decimal("31.00")
    assert allocation.total_cost == Decimal("31.00")
    assert ctx["project"].consumed_amount == Decimal("31.00")


def test_unknown_material_or_line_item(ctx):
    with pytest.raises(NotFoundError):
        ctx["services"].cost_allocations.create(
            user=ctx["admin"],
            project=ctx["project"],
            line_item_id=ctx["line_item_id"],
            labour_cost="100",
            material_allocations=[{"material_id": "missing", "quantity": "1", "unit_price": "5"}],
        )
    with pytest.raises(NotFoundError):
        ctx["services"].cost_allocations.create(
            user=ctx["admin"],
            project=ctx["project"],
            line_item_id="missing",
            labour_cost="100",
        )


def test_unassigned_team_leader_is_refused(ctx):
    with pytest.raises(PermissionDeniedError) as exc:
        _allocate(ctx, "100", user="outsider")
    assert exc.value.details["granted_by"] == ["admin", "team_leader assigned to the project"]

    assert _allocate(ctx, "100", user="admin").status == ApprovalStatus.approved


def test_cost_above_remaining_budget_waits_for_approval(ctx, db):
    project = _small_project(ctx, "1000")
    allocation = _allocate(ctx, "1500", user="admin", project=project)

    assert allocation.status == ApprovalStatus.pending
    assert project.consumed_amount == Decimal("0")
    workflow = db.query(ApprovalWorkflow).filter(ApprovalWorkflow.record_id == allocation.id).one()
    assert workflow.related_table == WorkflowTable.cost_allocations

    ctx["services"].cost_allocations.approve(user=ctx["admin"], record_id=allocation.id)
    db.refresh(project)
    # overspend is allowed, it only raises an alert
    assert project.consumed_amount == Decimal("1500")

    with pytest.raises(InvalidTransitionError):
        ctx["services"].cost_allocations.approve(user=ctx["admin"], record_id=allocation.id)
    db.refresh(project)
    assert project.consumed_amount == Decimal("1500")

    alerts = ctx["services"].alerts.list_alerts(tenant_id=project.tenant_id, project_ids=[project.id])
    assert [a.type for a in alerts] == [BudgetAlertType.over_budget]
    assert "over budget by ₦500.00" in alerts[0].message


def test_rejected_allocation_is_never_consumed(ctx, db):
    project = _small_project(ctx, "1000")
    allocation = _allocate(ctx, "1500", user="admin", project=project)

    ctx["services"].cost_allocations.reject(user=ctx["admin"], record_id=allocation.id, comments="Duplicate invoice")

    db.refresh(project)
    assert allocation.status == ApprovalStatus.rejected
    assert project.consumed_amount == Decimal("0")


def test_alert_thresholds(ctx):
    project = _small_project(ctx, "1000")
    alerts = ctx["services"].alerts

    _allocate(ctx, "700", user="admin", project=project)
    assert alerts.list_alerts(tenant_id=project.tenant_id, project_ids=[project.id]) == []

    _allocate(ctx, "150", user="admin", project=project)  # 85 %
    _allocate(ctx, "50", user="admin", project=project)  # 90 %, warning already open
    opened = alerts.list_alerts(tenant_id=project.tenant_id, project_ids=[project.id])
    assert [a.type for a in opened] == [BudgetAlertType.warning_threshold]
    assert opened[0].message.startswith('WARNING: Project "Gatehouse"')

    _allocate(ctx, "60", user="admin", project=project)  # 96 %
    types = {a.type for a in alerts.list_alerts(tenant_id=project.tenant_id, project_ids=[project.id])}
    assert types == {BudgetAlertType.warning_threshold, BudgetAlertType.critical_threshold}


def test_alert_acknowledge_and_resolve(ctx):
    project = _small_project(ctx, "1000")
    _allocate(ctx, "850", user="admin", project=project)
    alert = ctx["services"].alerts.list_alerts(tenant_id=project.tenant_id)[0]

    ctx["services"].alerts.acknowledge(tenant_id=project.tenant_id, alert_id=alert.id, operator_id=ctx["admin"].id)
    assert alert.status == BudgetAlertStatus.acknowledged
    assert alert.acknowledged_by == ctx["admin"].id

    ctx["services"].alerts.resolve(tenant_id=project.tenant_id, alert_id=alert.id, operator_id=ctx["admin"].id)
    with pytest.raises(InvalidTransitionError):
        ctx["services"].alerts.acknowledge(tenant_id=project.tenant_id, alert_id=alert.id, operator_id=ctx["admin"].id)


def test_filtered_listing(ctx, db):
    services = ctx["services"]
    electrical = services.catalog.create_line_item(
        tenant_id=ctx["admin"].company_id,
        name="Wiring",
        category=LineItemCategory.electrical,
        description=None,
        operator_id=ctx["admin"].id,
    )
    foundation_cost = _allocate(ctx, "100")
    electrical_cost = services.cost_allocations.create(
        user=ctx["leader"],
        project=ctx["project"],
        line_item_id=electrical.id,
        labour_cost="200",
    )

    only_electrical = services.cost_allocations.list_allocations(
        tenant_id=ctx["admin"].company_id,
        categories=[LineItemCategory.electrical],
    )
    assert [a.id for a in only_electrical] == [electrical_cost.id]

    both = services.cost_allocations.list_allocations(
        tenant_id=ctx["admin"].company_id,
        project_id=ctx["project"].id,
        status=ApprovalStatus.approved,
    )
    assert {a.id for a in both} == {foundation_cost.id, electrical_cost.id}
