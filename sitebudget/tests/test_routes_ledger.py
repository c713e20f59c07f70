# sitebudget/tests/test_routes_ledger.py
from decimal import Decimal

from sitebudget.db.session import session_scope
from sitebudget.models.project import Project
from sitebudget.services import view_cache as views
from sitebudget.tests.factories import ADMIN_PASSWORD, login, seed_company

REASON = "Scope reduced after client request"
DESCRIPTION = "Replace aluminium roofing sheets with stone coated tiles"


def _allocation_body(tenant, labour, materials=()):
    return {
        "projectId": tenant.project_id,
        "lineItemId": tenant.line_item_id,
        "labourCost": labour,
        "materialAllocations": [
            {"materialId": tenant.material_id, "quantity": qty, "unitPrice": price}
            for qty, price in materials
        ],
    }


def test_scope_reduction_amendment_flow(app, admin_client, tenant):
    with session_scope() as db:
        db.get(Project, tenant.project_id).consumed_amount = Decimal("40000")

    resp = admin_client.post(f"/api/projects/{tenant.project_id}/budget-impact", json={"amount": "-20000"})
    assert resp.status_code == 200
    preview = resp.get_json()["data"]
    assert preview["newBudget"] == {"amount": "80000.00", "currency": "NGN"}
    assert Decimal(preview["newUtilization"]) == Decimal("50")
    assert preview["impactType"] == "decrease"
    assert preview["isSignificant"] is True

    resp = admin_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "-20000",
        "reason": REASON,
    })
    assert resp.status_code == 201
    amendment = resp.get_json()["data"]
    assert amendment["status"] == "pending"
    assert amendment["amountAdded"] == {"amount": "-20000.00", "currency": "NGN"}
    assert amendment["isSignificant"] is True
    assert amendment["impact"]["impactType"] == "decrease"

    resp = admin_client.post(f"/api/approvals/{amendment['id']}/approve", json={})
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {
        "kind": "budget_amendments",
        "recordId": amendment["id"],
        "projectId": tenant.project_id,
        "status": "approved",
    }

    project = admin_client.get(f"/api/projects/{tenant.project_id}").get_json()["data"]
    assert project["budget"] == {"amount": "80000.00", "currency": "NGN"}
    assert project["remainingBudget"]["amount"] == "40000.00"

    again = admin_client.post(f"/api/approvals/{amendment['id']}/approve", json={})
    assert again.status_code == 409
    assert again.get_json()["error_type"] == "IRREVERSIBLE_CONFLICT"
    project = admin_client.get(f"/api/projects/{tenant.project_id}").get_json()["data"]
    assert project["budget"]["amount"] == "80000.00"


def test_amendment_status_endpoint(admin_client, tenant):
    created = admin_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "5000",
        "reason": REASON,
    }).get_json()["data"]

    resp = admin_client.patch(f"/api/budget-amendments/{created['id']}/status", json={"status": "rejected"})
    assert resp.status_code == 400
    assert resp.get_json()["error_type"] == "INPUT_ERROR"

    resp = admin_client.patch(
        f"/api/budget-amendments/{created['id']}/status",
        json={"status": "rejected", "comments": "Defer to phase two"},
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "rejected"
    assert data["reviewComments"] == "Defer to phase two"
    assert data["approverName"] == "Ada Admin"

    listed = admin_client.get(f"/api/budget-amendments?projectId={tenant.project_id}&status=rejected").get_json()["data"]
    assert [row["id"] for row in listed] == [created["id"]]


def test_invalid_amount_is_a_field_error(admin_client, tenant):
    resp = admin_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "twenty",
        "reason": REASON,
    })

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error_type"] == "VALIDATION_ERROR"
    assert [item["field"] for item in body["details"]["fields"]] == ["amountAdded"]


def test_unassigned_leader_sees_access_denied(outsider_client, tenant):
    resp = outsider_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "5000",
        "reason": REASON,
    })

    assert resp.status_code == 403
    body = resp.get_json()
    assert body["error_type"] == "PERMISSION_DENIED"
    assert "admin" in body["details"]["granted_by"]


def test_leader_proposes_but_only_admin_approves(leader_client, admin_client, tenant):
    created = leader_client.post("/api/change-orders", json={
        "projectId": tenant.project_id,
        "description": DESCRIPTION,
        "costImpact": "4000",
    })
    assert created.status_code == 201
    record_id = created.get_json()["data"]["id"]

    denied = leader_client.post(f"/api/approvals/{record_id}/approve", json={})
    assert denied.status_code == 403
    assert denied.get_json()["details"]["granted_by"] == ["admin"]

    assert admin_client.post(f"/api/approvals/{record_id}/approve", json={}).status_code == 200
    project = admin_client.get(f"/api/projects/{tenant.project_id}").get_json()["data"]
    assert project["budget"]["amount"] == "104000.00"


def test_blank_cost_impact_creates_draft(admin_client, tenant):
    resp = admin_client.post("/api/change-orders", json={
        "projectId": tenant.project_id,
        "description": DESCRIPTION,
        "costImpact": "",
    })

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "draft"
    assert data["impact"]["impactType"] == "none"


def test_cost_allocation_end_to_end(leader_client, tenant):
    resp = leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, 500, [(10, 25)]))

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["materialCost"] == {"amount": "250.00", "currency": "NGN"}
    assert data["totalCost"] == {"amount": "750.00", "currency": "NGN"}
    assert data["status"] == "approved"
    assert data["materialAllocations"][0]["total"]["amount"] == "250.00"
    assert data["alerts"] == []

    fetched = leader_client.get(f"/api/cost-allocations/{data['id']}").get_json()["data"]
    assert fetched["totalCost"]["amount"] == "750.00"


def test_cost_allocation_boundary(leader_client, tenant):
    rejected = leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, 0))
    assert rejected.status_code == 400
    assert rejected.get_json()["error_type"] == "BUSINESS_RULE_ERROR"

    accepted = leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, "0.01"))
    assert accepted.status_code == 201
    assert accepted.get_json()["data"]["totalCost"]["amount"] == "0.01"


def test_large_cost_allocation_raises_alert_and_waits(admin_client, tenant):
    resp = admin_client.post("/api/cost-allocations", json=_allocation_body(tenant, 85000))
    data = resp.get_json()["data"]
    assert data["status"] == "approved"
    assert [alert["type"] for alert in data["alerts"]] == ["warning_threshold"]
    assert "₦15,000.00 remaining" in data["alerts"][0]["message"]

    resp = admin_client.post("/api/cost-allocations", json=_allocation_body(tenant, 20000))
    assert resp.get_json()["data"]["status"] == "pending"

    pending = admin_client.get("/api/approvals/pending?table=cost_allocations").get_json()["data"]
    assert [row["recordId"] for row in pending] == [resp.get_json()["data"]["id"]]
    assert pending[0]["amount"] == {"amount": "20000.00", "currency": "NGN"}

    alerts = admin_client.get("/api/budget-alerts?status=active").get_json()["data"]
    assert len(alerts) == 1
    ack = admin_client.post(f"/api/budget-alerts/{alerts[0]['id']}/acknowledge")
    assert ack.status_code == 200
    assert ack.get_json()["data"]["status"] == "acknowledged"


def test_writes_refresh_cached_views(app, admin_client, leader_client, tenant):
    cache = app.extensions["view_cache"]

    before = admin_client.get("/api/analytics/tenant").get_json()["data"]
    assert before["totalSpent"] == {"amount": "0.00", "currency": "NGN"}
    assert before["utilizationState"] == "healthy"
    assert cache.is_cached(tenant_id=tenant.company_id, view=views.TENANT_ANALYTICS, params="all")

    history = admin_client.get(f"/api/budget-history?projectId={tenant.project_id}").get_json()["data"]
    assert [entry["type"] for entry in history] == ["initial"]

    leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, 500, [(10, 25)]))

    assert not cache.is_cached(tenant_id=tenant.company_id, view=views.TENANT_ANALYTICS, params="all")
    after = admin_client.get("/api/analytics/tenant").get_json()["data"]
    assert after["totalSpent"]["amount"] == "750.00"

    split = admin_client.get("/api/analytics/labour-material-split").get_json()["data"]
    assert split["labour"]["amount"] == "500.00"
    assert split["material"]["amount"] == "250.00"

    spending = admin_client.get("/api/analytics/category-spending").get_json()["data"]
    assert spending[0]["category"] == "foundation"
    assert spending[0]["amount"]["amount"] == "750.00"

    summary = admin_client.get("/api/analytics/budget-summary").get_json()["data"]
    assert summary[0]["spent"]["amount"] == "750.00"
    assert summary[0]["allocationCount"] == 1

    project = admin_client.get(f"/api/projects/{tenant.project_id}/analytics").get_json()["data"]
    assert project["consumedAmount"]["amount"] == "750.00"
    assert project["remainingBudget"]["amount"] == "99250.00"


def test_budget_history_follows_approvals(admin_client, tenant):
    created = admin_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "12500",
        "reason": REASON,
    }).get_json()["data"]

    history = admin_client.get(f"/api/budget-history?projectId={tenant.project_id}").get_json()["data"]
    assert [entry["runningTotal"]["amount"] for entry in history] == ["100000.00", "100000.00"]

    admin_client.post(f"/api/approvals/{created['id']}/approve", json={})

    history = admin_client.get(f"/api/budget-history?projectId={tenant.project_id}").get_json()["data"]
    assert [entry["runningTotal"]["amount"] for entry in history] == ["100000.00", "112500.00"]
    assert history[1]["status"] == "approved"

    only_amendments = admin_client.get("/api/budget-history?type=amendment").get_json()["data"]
    assert [entry["id"] for entry in only_amendments] == [created["id"]]

    bad = admin_client.get("/api/budget-history?type=bonus")
    assert bad.status_code == 400


def test_pending_queue_and_reject(admin_client, tenant):
    order = admin_client.post("/api/change-orders", json={
        "projectId": tenant.project_id,
        "description": DESCRIPTION,
        "costImpact": "-2500",
    }).get_json()["data"]

    pending = admin_client.get("/api/approvals/pending").get_json()["data"]
    assert [row["recordId"] for row in pending] == [order["id"]]
    assert pending[0]["kind"] == "change_orders"

    missing_comments = admin_client.post(f"/api/approvals/{order['id']}/reject", json={})
    assert missing_comments.status_code == 400

    resp = admin_client.post(f"/api/approvals/{order['id']}/reject", json={"comments": "Keep the current roofing sheets"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "rejected"

    assert admin_client.get("/api/approvals/pending").get_json()["data"] == []
    assert admin_client.post(f"/api/approvals/{order['id']}/approve", json={}).status_code == 409


def test_approval_stream(app, admin_client, tenant):
    bus = app.extensions["approval_event_bus"]

    resp = admin_client.get("/api/approvals/stream", buffered=False)
    try:
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        assert bus.subscriber_count(tenant.company_id) == 1
        assert next(iter(resp.response)) == b"retry: 30000\n\n"
    finally:
        resp.close()


def test_stream_requires_login(client, tenant):
    assert client.get("/api/approvals/stream").status_code == 401


def test_projects_of_other_tenants_are_not_found(app, admin_client, tenant):
    other = seed_company("Other Build", "admin@other-build.example")
    stranger = app.test_client()
    assert login(stranger, "admin@other-build.example", ADMIN_PASSWORD).status_code == 200

    assert stranger.get(f"/api/projects/{tenant.project_id}").status_code == 404
    assert stranger.post(f"/api/approvals/{tenant.project_id}/approve", json={}).status_code == 404

    own = stranger.get("/api/projects").get_json()["data"]
    assert [p["id"] for p in own] == [other.project_id]


def test_unknown_route_is_json(admin_client):
    resp = admin_client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["error_type"] == "NOT_FOUND"


def test_direct_budget_edit_keeps_history_consistent(admin_client, tenant):
    created = admin_client.post("/api/budget-amendments", json={
        "projectId": tenant.project_id,
        "amountAdded": "12500",
        "reason": REASON,
    }).get_json()["data"]
    admin_client.post(f"/api/approvals/{created['id']}/approve", json={})

    edited = admin_client.patch(f"/api/projects/{tenant.project_id}", json={"budget": "120000"})
    assert edited.status_code == 200
    assert edited.get_json()["data"]["budget"]["amount"] == "120000.00"

    history = admin_client.get(f"/api/budget-history?projectId={tenant.project_id}").get_json()["data"]
    assert [entry["type"] for entry in history] == ["initial", "amendment"]
    assert history[0]["amount"]["amount"] == "107500.00"
    assert history[-1]["runningTotal"]["amount"] == "120000.00"


def test_fractional_quantity_must_total_whole_cents(leader_client, tenant):
    inexact = leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, 0, [("2.5", "12.35")]))
    assert inexact.status_code == 400
    body = inexact.get_json()
    assert body["error_type"] == "INPUT_ERROR"
    assert body["details"]["field"] == "materialAllocations[0].quantity"

    exact = leader_client.post("/api/cost-allocations", json=_allocation_body(tenant, 0, [("2.5", "12.40")]))
    assert exact.status_code == 201
    assert exact.get_json()["data"]["totalCost"]["amount"] == "31.00"


def test_renamed_project_shows_in_pending_queue(admin_client, tenant):
    admin_client.post("/api/change-orders", json={
        "projectId": tenant.project_id,
        "description": DESCRIPTION,
        "costImpact": "-2500",
    })
    pending = admin_client.get("/api/approvals/pending").get_json()["data"]
    assert pending[0]["projectTitle"] == "Lekki Duplex"

    admin_client.patch(f"/api/projects/{tenant.project_id}", json={"title": "Lekki Duplex Phase 2"})

    pending = admin_client.get("/api/approvals/pending").get_json()["data"]
    assert pending[0]["projectTitle"] == "Lekki Duplex Phase 2"
