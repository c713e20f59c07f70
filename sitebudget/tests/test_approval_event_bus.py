# sitebudget/tests/test_approval_event_bus.py
import json
import queue

import pytest

from sitebudget.services.approval_event_bus import ApprovalEventBus


def test_events_reach_only_the_tenant_subscribers():
    bus = ApprovalEventBus()
    mine = bus.subscribe("t-1")
    theirs = bus.subscribe("t-2")

    bus.publish("t-1", event="created", record_id="r-1", kind="budget_amendment", project_id="p-1", status="pending")

    payload = mine.get_nowait()
    assert payload["event"] == "created"
    assert payload["recordId"] == "r-1"
    assert payload["kind"] == "budget_amendment"
    assert payload["projectId"] == "p-1"
    assert theirs.empty()


def test_unsubscribe():
    bus = ApprovalEventBus()
    first = bus.subscribe("t-1")
    second = bus.subscribe("t-1")
    assert bus.subscriber_count("t-1") == 2

    bus.unsubscribe("t-1", first)
    bus.unsubscribe("t-1", second)
    bus.unsubscribe("t-1", second)

    assert bus.subscriber_count("t-1") == 0


def test_full_subscriber_misses_events_without_blocking():
    bus = ApprovalEventBus(max_queue_size=1)
    slow = bus.subscribe("t-1")

    bus.publish("t-1", event="created", record_id="r-1", kind="change_order")
    bus.publish("t-1", event="approved", record_id="r-1", kind="change_order")

    assert slow.get_nowait()["event"] == "created"
    with pytest.raises(queue.Empty):
        slow.get_nowait()


def test_sse_frame():
    frame = ApprovalEventBus.format_sse({"event": "approved", "recordId": "r-9"})

    assert frame.startswith("event: approval\ndata: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"event": "approved", "recordId": "r-9"}
