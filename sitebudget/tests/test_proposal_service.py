# sitebudget/tests/test_proposal_service.py
from decimal import Decimal

import pytest

from sitebudget.db.enums import ApprovalStatus, ImpactType, WorkflowTable
from sitebudget.db.session import get_session, session_scope
from sitebudget.errors import InputError, InvalidTransitionError, NotFoundError, PermissionDeniedError
from sitebudget.models.approval_workflow import ApprovalWorkflow
from sitebudget.models.project import Project
from sitebudget.models.user import User
from sitebudget.services.registry import ServiceRegistry
from sitebudget.tests.factories import seed_company

REASON = "Scope reduced after client request"
DESCRIPTION = "Replace aluminium roofing sheets with stone coated tiles"


def _load(db, tenant):
    return (
        ServiceRegistry(db),
        db.get(User, tenant.admin_id),
        db.get(Project, tenant.project_id),
    )


def test_approved_amendment_moves_budget_exactly_once(db, tenant):
    services, admin, project = _load(db, tenant)

    record = services.amendments.propose(user=admin, project=project, amount_added=Decimal("15000"), reason=REASON)
    assert record.status == ApprovalStatus.pending

    services.amendments.approve(user=admin, record_id=record.id, comments="ok")
    assert project.budget == Decimal("115000")
    assert record.status == ApprovalStatus.approved
    assert record.approved_by == admin.id
    assert record.approved_at is not None

    with pytest.raises(InvalidTransitionError) as exc:
        services.amendments.approve(user=admin, record_id=record.id)
    assert exc.value.details["status"] == "approved"

    db.refresh(project)
    assert project.budget == Decimal("115000")


def test_scope_reduction_end_to_end(db, tenant):
    services, admin, project = _load(db, tenant)
    project.consumed_amount = Decimal("40000")
    db.flush()

    impact = services.amendments.preview(project=project, amount=Decimal("-20000"))
    assert impact.new_budget == Decimal("80000")
    assert impact.new_utilization == Decimal("50")
    assert impact.impact_type == ImpactType.decrease
    assert impact.is_significant is True

    record = services.amendments.propose(user=admin, project=project, amount_added="-20000", reason=REASON)
    services.amendments.approve(user=admin, record_id=record.id)

    assert project.budget == Decimal("80000")


@pytest.mark.parametrize(
    "amount, reason, field",
    [
        ("0", REASON, "amountAdded"),
        ("abc", REASON, "amountAdded"),
        ("500", "too short", "reason"),
        ("500", "x" * 1001, "reason"),
    ],
)
def test_amendment_validation(db, tenant, amount, reason, field):
    services, admin, project = _load(db, tenant)
    with pytest.raises(InputError) as exc:
        services.amendments.propose(user=admin, project=project, amount_added=amount, reason=reason)
    assert exc.value.details["field"] == field


def test_only_admin_or_assigned_leader_may_propose(db, tenant):
    services, _, project = _load(db, tenant)
    leader = db.get(User, tenant.leader_id)
    outsider = db.get(User, tenant.other_leader_id)

    record = services.amendments.propose(user=leader, project=project, amount_added="2500", reason=REASON)
    assert record.proposed_by == leader.id

    with pytest.raises(PermissionDeniedError) as exc:
        services.amendments.propose(user=outsider, project=project, amount_added="2500", reason=REASON)
    assert "admin" in exc.value.details["granted_by"]


def test_team_leader_can_not_approve_amendments(db, tenant):
    services, admin, project = _load(db, tenant)
    leader = db.get(User, tenant.leader_id)
    record = services.amendments.propose(user=leader, project=project, amount_added="2500", reason=REASON)

    with pytest.raises(PermissionDeniedError) as exc:
        services.amendments.approve(user=leader, record_id=record.id)
    assert exc.value.details["granted_by"] == ["admin"]
    assert project.budget == Decimal("100000")


def test_reject_needs_comments_and_is_terminal(db, tenant):
    services, admin, project = _load(db, tenant)
    record = services.amendments.propose(user=admin, project=project, amount_added="5000", reason=REASON)

    with pytest.raises(InputError):
        services.amendments.reject(user=admin, record_id=record.id, comments="   ")

    services.amendments.reject(user=admin, record_id=record.id, comments="Not in this phase")
    assert record.status == ApprovalStatus.rejected
    assert record.review_comments == "Not in this phase"

    workflow = (
        db.query(ApprovalWorkflow)
        .filter(ApprovalWorkflow.record_id == record.id)
        .one()
    )
    assert workflow.related_table == WorkflowTable.budget_amendments
    assert workflow.status == ApprovalStatus.rejected
    assert workflow.approver_id == admin.id
    assert workflow.comments == "Not in this phase"

    with pytest.raises(InvalidTransitionError):
        services.amendments.approve(user=admin, record_id=record.id)
    db.refresh(project)
    assert project.budget == Decimal("100000")


def test_zero_impact_change_order_is_draft_and_never_moves_budget(db, tenant):
    services, admin, project = _load(db, tenant)

    record = services.change_orders.propose(user=admin, project=project, description=DESCRIPTION, cost_impact="  ")
    assert record.status == ApprovalStatus.draft
    assert record.cost_impact == Decimal("0")

    services.change_orders.approve(user=admin, record_id=record.id)
    assert record.status == ApprovalStatus.approved
    db.refresh(project)
    assert project.budget == Decimal("100000")


def test_change_order_with_impact(db, tenant):
    services, admin, project = _load(db, tenant)

    record = services.change_orders.propose(user=admin, project=project, description=DESCRIPTION, cost_impact="-3000")
    assert record.status == ApprovalStatus.pending

    services.change_orders.approve(user=admin, record_id=record.id)
    assert project.budget == Decimal("97000")


def test_change_order_description_length(db, tenant):
    services, admin, project = _load(db, tenant)
    with pytest.raises(InputError) as exc:
        services.change_orders.propose(user=admin, project=project, description="Too short", cost_impact="100")
    assert exc.value.details["field"] == "description"


def test_listing_is_enriched(db, tenant):
    services, admin, project = _load(db, tenant)
    services.amendments.propose(user=admin, project=project, amount_added="15000", reason=REASON)
    services.amendments.propose(user=admin, project=project, amount_added="10000", reason=REASON)

    rows = services.amendments.enrich(services.amendments.list_records(tenant_id=tenant.company_id))

    assert {row["is_significant"] for row in rows} == {True, False}
    assert all(row["project_title"] == "Lekki Duplex" for row in rows)
    assert all(row["proposer_name"] == "Ada Admin" for row in rows)


def test_other_tenants_records_are_not_found(app, tenant):
    other = seed_company("Other Build", "admin@other-build.example")

    with session_scope() as db:
        services, admin, project = _load(db, tenant)
        record_id = services.amendments.propose(user=admin, project=project, amount_added="5000", reason=REASON).id

    with session_scope() as db:
        services = ServiceRegistry(db)
        stranger = db.get(User, other.admin_id)
        with pytest.raises(NotFoundError):
            services.amendments.approve(user=stranger, record_id=record_id)
        with pytest.raises(NotFoundError):
            services.approvals.approve(user=stranger, record_id=record_id)


def test_approval_queue_dispatches_by_table(db, tenant):
    services, admin, project = _load(db, tenant)
    amendment = services.amendments.propose(user=admin, project=project, amount_added="5000", reason=REASON)
    change_order = services.change_orders.propose(user=admin, project=project, description=DESCRIPTION, cost_impact="700")
    services.change_orders.propose(user=admin, project=project, description=DESCRIPTION)

    pending = services.approvals.list_pending(tenant_id=tenant.company_id)
    assert {row["record_id"] for row in pending} == {amendment.id, change_order.id}
    assert {row["kind"] for row in pending} == {"budget_amendments", "change_orders"}

    only_orders = services.approvals.list_pending(tenant_id=tenant.company_id, table=WorkflowTable.change_orders)
    assert [row["record_id"] for row in only_orders] == [change_order.id]

    table, record = services.approvals.approve(user=admin, record_id=change_order.id)
    assert table == WorkflowTable.change_orders
    assert record.status == ApprovalStatus.approved
    assert project.budget == Decimal("100700")

    remaining = services.approvals.list_pending(tenant_id=tenant.company_id)
    assert [row["record_id"] for row in remaining] == [amendment.id]


def test_decision_in_the_proposing_session_reuses_the_workflow_row(db, tenant):
    services, admin, project = _load(db, tenant)
    record = services.amendments.propose(user=admin, project=project, amount_added="5000", reason=REASON)

    services.amendments.approve(user=admin, record_id=record.id, comments="ok")
    db.flush()

    workflows = db.query(ApprovalWorkflow).filter(ApprovalWorkflow.record_id == record.id).all()
    assert len(workflows) == 1
    assert workflows[0].status == ApprovalStatus.approved
    assert workflows[0].approver_id == admin.id


def test_concurrent_approvals_from_two_sessions_apply_once(app, tenant):
    with session_scope() as db:
        services, admin, project = _load(db, tenant)
        record_id = services.amendments.propose(user=admin, project=project, amount_added="15000", reason=REASON).id

    first, second = get_session(), get_session()
    try:
        first_services = ServiceRegistry(first)
        second_services = ServiceRegistry(second)
        first_admin = first.get(User, tenant.admin_id)
        second_admin = second.get(User, tenant.admin_id)

        # both deciders have the pending record loaded before either decides
        assert first_services.amendments.get_record(tenant_id=tenant.company_id, record_id=record_id).status == ApprovalStatus.pending
        stale = second_services.amendments.get_record(tenant_id=tenant.company_id, record_id=record_id)
        assert stale.status == ApprovalStatus.pending

        first_services.amendments.approve(user=first_admin, record_id=record_id)
        first.commit()

        with pytest.raises(InvalidTransitionError) as exc:
            second_services.amendments.approve(user=second_admin, record_id=record_id)
        assert exc.value.details["status"] == "approved"
        second.rollback()
    finally:
        first.close()
        second.close()

    with session_scope() as db:
        assert db.get(Project, tenant.project_id).budget == Decimal("115000")
        workflows = db.query(ApprovalWorkflow).filter(ApprovalWorkflow.record_id == record_id).all()
        assert [workflow.status for workflow in workflows] == [ApprovalStatus.approved]
