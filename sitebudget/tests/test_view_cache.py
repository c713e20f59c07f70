# sitebudget/tests/test_view_cache.py
import pytest

from sitebudget.services import view_cache as views
from sitebudget.services.view_cache import ALL_VIEWS, VIEW_DEPENDENCIES, ViewCache


class Counter:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def test_computes_once_until_invalidated():
    cache = ViewCache()
    compute = Counter({"totalSpent": "0.00"})

    assert cache.get_or_compute(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all", compute=compute) == {"totalSpent": "0.00"}
    cache.get_or_compute(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all", compute=compute)
    assert compute.calls == 1

    cache.invalidate("t-1", "cost_allocation.created")
    cache.get_or_compute(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all", compute=compute)
    assert compute.calls == 2


def test_invalidation_is_limited_to_dependent_views():
    cache = ViewCache()
    for view in (views.TENANT_ANALYTICS, views.CATEGORY_SPENDING, views.BUDGET_HISTORY, views.PENDING_APPROVALS):
        cache.get_or_compute(tenant_id="t-1", view=view, params="all", compute=lambda: ["cached"])

    dropped = cache.invalidate("t-1", "transaction.created")

    assert views.BUDGET_HISTORY not in dropped
    assert not cache.is_cached(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all")
    assert not cache.is_cached(tenant_id="t-1", view=views.CATEGORY_SPENDING, params="all")
    assert cache.is_cached(tenant_id="t-1", view=views.BUDGET_HISTORY, params="all")
    assert cache.is_cached(tenant_id="t-1", view=views.PENDING_APPROVALS, params="all")


def test_invalidation_drops_every_parameter_variant():
    cache = ViewCache()
    cache.get_or_compute(tenant_id="t-1", view=views.PROJECT_ANALYTICS, params="p-1", compute=lambda: {"a": 1})
    cache.get_or_compute(tenant_id="t-1", view=views.PROJECT_ANALYTICS, params="p-2", compute=lambda: {"a": 2})

    cache.invalidate("t-1", "budget_amendment.approved")

    assert not cache.is_cached(tenant_id="t-1", view=views.PROJECT_ANALYTICS, params="p-1")
    assert not cache.is_cached(tenant_id="t-1", view=views.PROJECT_ANALYTICS, params="p-2")


def test_invalidation_is_per_tenant():
    cache = ViewCache()
    cache.get_or_compute(tenant_id="t-1", view=views.BUDGET_SUMMARY, params="all", compute=lambda: [1])
    cache.get_or_compute(tenant_id="t-2", view=views.BUDGET_SUMMARY, params="all", compute=lambda: [2])

    cache.invalidate("t-1", "project.updated")

    assert not cache.is_cached(tenant_id="t-1", view=views.BUDGET_SUMMARY, params="all")
    assert cache.is_cached(tenant_id="t-2", view=views.BUDGET_SUMMARY, params="all")


def test_rejection_leaves_spend_views_cached():
    cache = ViewCache()
    cache.get_or_compute(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all", compute=lambda: {})
    cache.get_or_compute(tenant_id="t-1", view=views.PENDING_APPROVALS, params="all:-", compute=lambda: [])

    cache.invalidate("t-1", "cost_allocation.rejected")

    assert cache.is_cached(tenant_id="t-1", view=views.TENANT_ANALYTICS, params="all")
    assert not cache.is_cached(tenant_id="t-1", view=views.PENDING_APPROVALS, params="all:-")


def test_unknown_view_and_operation():
    cache = ViewCache()
    with pytest.raises(ValueError):
        cache.get_or_compute(tenant_id="t-1", view="dashboard", compute=lambda: {})
    with pytest.raises(KeyError):
        cache.invalidate("t-1", "project.deleted")


def test_dependency_table_names_known_views():
    for operation, dependent in VIEW_DEPENDENCIES.items():
        assert dependent, operation
        assert dependent <= ALL_VIEWS, operation


def test_value_computed_across_an_invalidation_is_not_stored():
    cache = ViewCache()
    state = {"value": "stale", "invalidated": False}

    def compute():
        value = state["value"]
        if not state["invalidated"]:
            # a write lands while the read model is still being built
            state["invalidated"] = True
            state["value"] = "fresh"
            cache.invalidate("t1", "cost_allocation.created")
        return value

    first = cache.get_or_compute(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all", compute=compute)
    assert first == "stale"
    assert not cache.is_cached(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all")

    second = cache.get_or_compute(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all", compute=compute)
    assert second == "fresh"
    assert cache.is_cached(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all")


def test_invalidation_of_another_tenant_does_not_block_storing():
    cache = ViewCache()

    def compute():
        cache.invalidate("t2", "cost_allocation.created")
        return {"totalSpent": "0.00"}

    cache.get_or_compute(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all", compute=compute)

    assert cache.is_cached(tenant_id="t1", view=views.TENANT_ANALYTICS, params="all")


def test_project_edit_drops_pending_approvals():
    cache = ViewCache()
    cache.get_or_compute(tenant_id="t-1", view=views.PENDING_APPROVALS, params="all:-", compute=lambda: [{"projectTitle": "Old"}])

    dropped = cache.invalidate("t-1", "project.updated")

    assert views.PENDING_APPROVALS in dropped
    assert not cache.is_cached(tenant_id="t-1", view=views.PENDING_APPROVALS, params="all:-")
