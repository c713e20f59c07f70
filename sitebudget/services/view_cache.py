# sitebudget/services/view_cache.py
"""
Memoized aggregate read views, invalidated by an explicit dependency table.

Each write operation names the read views it changes; a write only drops those
views, and only for the tenant it happened in.
"""
import threading
from typing import Any, Callable, Dict, FrozenSet, Optional, Set, Tuple

from cachelib import SimpleCache

from sitebudget.logger import get_logger

logger = get_logger(__name__)

# =========
# Read views
# =========
TENANT_ANALYTICS = "tenant_analytics"
PROJECT_ANALYTICS = "project_analytics"
BUDGET_SUMMARY = "budget_summary"
CATEGORY_SPENDING = "category_spending"
LABOUR_MATERIAL_SPLIT = "labour_material_split"
BUDGET_HISTORY = "budget_history"
PENDING_APPROVALS = "pending_approvals"

ALL_VIEWS = frozenset({
    TENANT_ANALYTICS,
    PROJECT_ANALYTICS,
    BUDGET_SUMMARY,
    CATEGORY_SPENDING,
    LABOUR_MATERIAL_SPLIT,
    BUDGET_HISTORY,
    PENDING_APPROVALS,
})

_SPEND_VIEWS = frozenset({
    TENANT_ANALYTICS,
    PROJECT_ANALYTICS,
    BUDGET_SUMMARY,
    CATEGORY_SPENDING,
    LABOUR_MATERIAL_SPLIT,
})
_BUDGET_VIEWS = frozenset({TENANT_ANALYTICS, PROJECT_ANALYTICS, BUDGET_SUMMARY, BUDGET_HISTORY})

# write operation -> read views it invalidates
VIEW_DEPENDENCIES: Dict[str, FrozenSet[str]] = {
    "project.created": _BUDGET_VIEWS,
    # pending rows carry the project title
    "project.updated": _BUDGET_VIEWS | {PENDING_APPROVALS},
    "budget_amendment.created": frozenset({BUDGET_HISTORY, PENDING_APPROVALS}),
    "budget_amendment.approved": _BUDGET_VIEWS | {PENDING_APPROVALS},
    "budget_amendment.rejected": frozenset({BUDGET_HISTORY, PENDING_APPROVALS}),
    "change_order.created": frozenset({BUDGET_HISTORY, PENDING_APPROVALS}),
    "change_order.approved": _BUDGET_VIEWS | {PENDING_APPROVALS},
    "change_order.rejected": frozenset({BUDGET_HISTORY, PENDING_APPROVALS}),
    "cost_allocation.created": _SPEND_VIEWS | {PENDING_APPROVALS},
    "cost_allocation.approved": _SPEND_VIEWS | {PENDING_APPROVALS},
    "cost_allocation.rejected": frozenset({PENDING_APPROVALS}),
    "transaction.created": frozenset({TENANT_ANALYTICS, PROJECT_ANALYTICS, BUDGET_SUMMARY, CATEGORY_SPENDING}),
    "line_item.updated": frozenset({CATEGORY_SPENDING, LABOUR_MATERIAL_SPLIT}),
}


class ViewCache:
    """
    Thin per-tenant layer over a cachelib backend.

    cachelib has no prefix delete, so the keys stored per (tenant, view) are
    tracked here and dropped together on invalidation.

    Each (tenant, view) also has a generation, bumped on invalidation. A value
    computed across an invalidation is returned to its caller but never stored.
    """

    def __init__(self, backend=None, default_timeout: int = 300):
        self.backend = backend if backend is not None else SimpleCache(default_timeout=default_timeout)
        self.default_timeout = default_timeout
        self._keys: Dict[Tuple[str, str], Set[str]] = {}
        self._generations: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _cache_key(tenant_id: str, view: str, params: Optional[str]) -> str:
        return f"view:{tenant_id}:{view}:{params or '-'}"

    def get_or_compute(
        self,
        *,
        tenant_id: str,
        view: str,
        compute: Callable[[], Any],
        params: Optional[str] = None,
    ) -> Any:
        '''
        Return the cached value of a view, computing and storing it on a miss.

        :param view: one of ALL_VIEWS
        :param compute: zero-arg callable producing a JSON-ready value
        :param params: extra key part (project id, filters), None for the tenant-wide view
        '''
        if view not in ALL_VIEWS:
            raise ValueError(f"Unknown read view: {view}")
        key = self._cache_key(tenant_id, view, params)
        cached = self.backend.get(key)
        if cached is not None:
            return cached

        with self._lock:
            generation = self._generations.get((tenant_id, view), 0)

        value = compute()
        with self._lock:
            if self._generations.get((tenant_id, view), 0) != generation:
                logger.debug(f"{view} of tenant {tenant_id} invalidated while computing, not stored")
                return value
            self.backend.set(key, value, timeout=self.default_timeout)
            self._keys.setdefault((tenant_id, view), set()).add(key)
        return value

    def invalidate(self, tenant_id: str, operation: str) -> FrozenSet[str]:
        """
        Drop the views affected by one write operation for one tenant.

        :return: the invalidated view names
        :raises KeyError: operation missing from VIEW_DEPENDENCIES
        """
        views = VIEW_DEPENDENCIES[operation]
        with self._lock:
            keys = []
            for view in views:
                self._generations[(tenant_id, view)] = self._generations.get((tenant_id, view), 0) + 1
                keys.extend(self._keys.pop((tenant_id, view), ()))
        if keys:
            self.backend.delete_many(*keys)
        logger.debug(f"{operation} invalidated {sorted(views)} for tenant {tenant_id}")
        return views

    def is_cached(self, *, tenant_id: str, view: str, params: Optional[str] = None) -> bool:
        return self.backend.has(self._cache_key(tenant_id, view, params))

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()
        self.backend.clear()
