# sitebudget/tests/test_analytics_service.py
from datetime import datetime
from decimal import Decimal

import pytest

from sitebudget.db.enums import LineItemCategory, TransactionType
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.registry import ServiceRegistry


@pytest.fixture
def ledger(db, tenant):
    """Project with one 750 allocation (500 labour, 250 cement), a 250 expense and 5 000 revenue."""
    services = ServiceRegistry(db)
    admin = db.get(User, tenant.admin_id)
    project = db.get(Project, tenant.project_id)

    services.cost_allocations.create(
        user=admin,
        project=project,
        line_item_id=tenant.line_item_id,
        labour_cost="500",
        material_allocations=[{"material_id": tenant.material_id, "quantity": "10", "unit_price": "25"}],
    )
    services.transactions.create_transaction(
        user=admin,
        project=project,
        type=TransactionType.expense,
        amount="250",
        category=LineItemCategory.foundation,
    )
    services.transactions.create_transaction(
        user=admin,
        project=project,
        type=TransactionType.revenue,
        amount="5000",
        category=LineItemCategory.miscellaneous,
    )
    return services, admin, project


def test_tenant_analytics(ledger, tenant):
    services, _, _ = ledger
    result = services.analytics.tenant_analytics(tenant_id=tenant.company_id)

    assert result["total_budget"] == Decimal("100000")
    assert result["total_spent"] == Decimal("1000")
    assert result["total_revenue"] == Decimal("5000")
    assert result["net_profit"] == Decimal("4000")
    assert result["budget_utilization"] == Decimal("1")
    assert result["utilization_state"] == "healthy"
    assert result["active_projects"] == 1
    assert result["total_projects"] == 1


def test_inactive_projects_leave_total_budget(ledger, tenant):
    services, admin, _ = ledger
    services.projects.create_project(
        tenant_id=tenant.company_id,
        title="Closed Warehouse",
        budget=Decimal("50000"),
        start_date=datetime(2025, 1, 1),
        end_date=datetime(2025, 6, 1),
        manager_id=admin.id,
        revenue=Decimal("1200"),
        status="completed",
    )

    result = services.analytics.tenant_analytics(tenant_id=tenant.company_id)

    assert result["total_budget"] == Decimal("100000")
    assert result["total_projects"] == 2
    assert result["active_projects"] == 1
    # no revenue transactions on the closed project: its contract revenue counts
    assert result["total_revenue"] == Decimal("6200")


def test_project_analytics(ledger):
    services, _, project = ledger
    result = services.analytics.project_analytics(project=project)

    assert result["project_id"] == project.id
    assert result["consumed_amount"] == Decimal("750")
    assert result["remaining_budget"] == Decimal("99250")
    assert result["total_spent"] == Decimal("1000")
    assert result["transaction_count"] == 2


def test_pending_allocations_are_not_spent(ledger, tenant):
    services, admin, project = ledger
    services.cost_allocations.create(
        user=admin,
        project=project,
        line_item_id=tenant.line_item_id,
        labour_cost="200000",
    )

    assert services.analytics.tenant_analytics(tenant_id=tenant.company_id)["total_spent"] == Decimal("1000")


def test_budget_summary(ledger):
    services, _, project = ledger
    [row] = services.analytics.budget_summary(tenant_id=project.tenant_id)

    assert row["project_title"] == "Lekki Duplex"
    assert row["spent"] == Decimal("750")
    assert row["remaining"] == Decimal("99250")
    assert row["spent_percentage"] == Decimal("0.75")
    assert row["status"] == "healthy"
    assert row["allocation_count"] == 1


def test_category_spending(ledger):
    services, _, project = ledger
    rows = services.analytics.category_spending(tenant_id=project.tenant_id)

    assert rows == [{
        "category": "foundation",
        "amount": Decimal("1000"),
        "count": 2,
        "percentage": Decimal("100"),
    }]


def test_labour_material_split(ledger):
    services, _, project = ledger
    split = services.analytics.labour_material_split(tenant_id=project.tenant_id)

    assert split["labour"] == Decimal("500")
    assert split["material"] == Decimal("250")
    assert split["total"] == Decimal("750")
    assert split["labour_percentage"].quantize(Decimal("0.01")) == Decimal("66.67")
    assert split["material_percentage"].quantize(Decimal("0.01")) == Decimal("33.33")
    assert split["by_category"] == [{
        "category": "foundation",
        "labour": Decimal("500"),
        "material": Decimal("250"),
        "total": Decimal("750"),
    }]


def test_empty_tenant(db, tenant):
    analytics = ServiceRegistry(db).analytics

    assert analytics.category_spending(tenant_id=tenant.company_id) == []
    split = analytics.labour_material_split(tenant_id=tenant.company_id)
    assert split["total"] == Decimal("0")
    assert split["by_category"] == []
    result = analytics.tenant_analytics(tenant_id=tenant.company_id)
    assert result["total_spent"] == Decimal("0")
    assert result["budget_utilization"] == Decimal("0")


def test_visibility_restriction(ledger, tenant):
    services, _, _ = ledger
    result = services.analytics.tenant_analytics(tenant_id=tenant.company_id, project_ids=[])

    assert result["total_projects"] == 0
    assert result["total_spent"] == Decimal("0")
