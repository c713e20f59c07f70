# sitebudget/tests/test_budget_history.py
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

from sitebudget.db.enums import ApprovalStatus, HistoryEntryType
from sitebudget.services.budget_history_service import filter_history, reconstruct_budget_history

T0 = datetime(2026, 3, 1, 9, 0, 0)


def _project(pid, initial, current=None, at=T0, title="Tower A"):
    return SimpleNamespace(
        id=pid,
        title=title,
        initial_budget=Decimal(initial),
        budget=Decimal(current or initial),
        created_at=at,
    )


def _amendment(aid, pid, amount, status, minutes):
    return SimpleNamespace(
        id=aid,
        project_id=pid,
        amount_added=Decimal(amount),
        reason="Client requested extra floor",
        status=status,
        proposed_by="u-1",
        approved_by="u-admin" if status == ApprovalStatus.approved else None,
        created_at=T0 + timedelta(minutes=minutes),
    )


def _change_order(cid, pid, impact, status, minutes):
    return SimpleNamespace(
        id=cid,
        project_id=pid,
        cost_impact=Decimal(impact),
        description="Switch roofing sheets to stone coated",
        status=status,
        proposed_by="u-1",
        approved_by=None,
        created_at=T0 + timedelta(minutes=minutes),
    )


def _fixture():
    projects = [_project("p-1", "1000", current="1400")]
    amendments = [
        _amendment("a-1", "p-1", "500", ApprovalStatus.approved, 1),
        _amendment("a-2", "p-1", "200", ApprovalStatus.pending, 2),
        _amendment("a-3", "p-1", "50", ApprovalStatus.rejected, 5),
    ]
    change_orders = [
        _change_order("c-1", "p-1", "-100", ApprovalStatus.approved, 3),
        _change_order("c-2", "p-1", "0", ApprovalStatus.draft, 4),
    ]
    return projects, amendments, change_orders


def test_running_totals_count_only_approved_changes():
    entries = reconstruct_budget_history(*_fixture())

    assert [e.id for e in entries] == ["initial-p-1", "a-1", "a-2", "c-1", "a-3"]
    assert [e.running_total for e in entries] == [
        Decimal("1000"),
        Decimal("1500"),
        Decimal("1500"),
        Decimal("1400"),
        Decimal("1400"),
    ]
    assert entries[0].type == HistoryEntryType.initial
    assert entries[0].status == ApprovalStatus.approved
    assert entries[0].project_title == "Tower A"


def test_history_starts_from_initial_budget_and_ends_at_current():
    projects, amendments, change_orders = _fixture()

    entries = reconstruct_budget_history(projects, amendments, change_orders)

    assert entries[0].amount == Decimal("1000")
    assert entries[-1].running_total == projects[0].budget


def test_zero_impact_change_orders_are_left_out():
    entries = reconstruct_budget_history(*_fixture())
    assert "c-2" not in {e.id for e in entries}


def test_reconstruction_is_deterministic_and_leaves_inputs_alone():
    projects, amendments, change_orders = _fixture()

    first = reconstruct_budget_history(projects, amendments, change_orders)
    second = reconstruct_budget_history(projects, amendments, change_orders)

    assert [(e.id, e.running_total) for e in first] == [(e.id, e.running_total) for e in second]
    assert amendments[0].amount_added == Decimal("500")
    assert projects[0].initial_budget == Decimal("1000")


def test_filter_keeps_running_totals():
    entries = reconstruct_budget_history(*_fixture())

    only_amendments = filter_history(entries, type=HistoryEntryType.amendment)
    assert [e.id for e in only_amendments] == ["a-1", "a-2", "a-3"]
    assert [e.running_total for e in only_amendments] == [Decimal("1500"), Decimal("1500"), Decimal("1400")]

    approved = filter_history(entries, status=ApprovalStatus.approved)
    assert [e.id for e in approved] == ["initial-p-1", "a-1", "c-1"]


def test_projects_keep_separate_running_totals():
    projects = [_project("p-1", "1000"), _project("p-2", "300", title="Tower B")]
    amendments = [
        _amendment("a-1", "p-1", "500", ApprovalStatus.approved, 1),
        _amendment("b-1", "p-2", "-100", ApprovalStatus.approved, 2),
    ]

    entries = reconstruct_budget_history(projects, amendments, [])
    totals = {e.id: e.running_total for e in entries}

    assert totals["a-1"] == Decimal("1500")
    assert totals["b-1"] == Decimal("200")
    assert next(e for e in entries if e.id == "b-1").project_title == "Tower B"


def test_equal_timestamps_keep_initial_first():
    projects = [_project("p-1", "1000")]
    amendments = [_amendment("a-1", "p-1", "250", ApprovalStatus.approved, 0)]

    entries = reconstruct_budget_history(projects, amendments, [])

    assert [e.id for e in entries] == ["initial-p-1", "a-1"]
    assert entries[-1].running_total == Decimal("1250")


def test_empty_inputs():
    assert reconstruct_budget_history([], [], []) == []
