# sitebudget/services/approval_event_bus.py
"""
In-process publish / subscribe topic per tenant for approval queue events.
The SSE endpoint drains one subscriber queue per connected client.
"""
import json
import queue
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Set

from sitebudget.logger import get_logger

logger = get_logger(__name__)


class ApprovalEventBus:

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, Set[queue.Queue]] = {}
        self._lock = threading.Lock()

    def subscribe(self, tenant_id: str) -> queue.Queue:
        subscriber: queue.Queue = queue.Queue(maxsize=self.max_queue_size)
        with self._lock:
            self._subscribers.setdefault(tenant_id, set()).add(subscriber)
        return subscriber

    def unsubscribe(self, tenant_id: str, subscriber: queue.Queue) -> None:
        with self._lock:
            subscribers = self._subscribers.get(tenant_id)
            if subscribers is None:
                return
            subscribers.discard(subscriber)
            if not subscribers:
                del self._subscribers[tenant_id]

    def subscriber_count(self, tenant_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(tenant_id, ()))

    def publish(
        self,
        tenant_id: str,
        *,
        event: str,
        record_id: str,
        kind: str,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        '''
        Fan one event out to every subscriber of the tenant.
        A subscriber whose queue is full misses the event and catches up on the
        next poll.

        :param event: "created" / "approved" / "rejected"
        :param kind: cost_allocation / budget_amendment / change_order
        '''
        payload = {
            "event": event,
            "kind": kind,
            "recordId": record_id,
            "projectId": project_id,
            "status": status,
            "at": datetime.now().isoformat(),
        }
        with self._lock:
            subscribers = list(self._subscribers.get(tenant_id, ()))
        for subscriber in subscribers:
            try:
                subscriber.put_nowait(payload)
            except queue.Full:
                logger.warning(f"Approval event dropped for a slow subscriber of tenant {tenant_id}")
        return payload

    @staticmethod
    def format_sse(payload: Dict[str, Any], event: str = "approval") -> str:
        return f"event: {event}\ndata: {json.dumps(payload)}\n\n"
