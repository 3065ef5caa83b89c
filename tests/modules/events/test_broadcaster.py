import asyncio
import threading

import pytest

from deskagent.core.constants import EventType
from deskagent.modules.events.broadcaster import Event, EventBroadcaster


@pytest.mark.asyncio
async def test_every_subscriber_receives_events():
    broadcaster = EventBroadcaster(queue_size=8)
    a = broadcaster.subscribe()
    b = broadcaster.subscribe()

    broadcaster.task_update("task-1", "running")

    for sub in (a, b):
        event = sub.get_nowait()
        assert event.type == EventType.TASK
        assert event.task_id == "task-1"
        assert event.payload == {"status": "running", "message": ""}


@pytest.mark.asyncio
async def test_full_queue_drops_without_blocking():
    broadcaster = EventBroadcaster(queue_size=2)
    slow = broadcaster.subscribe()
    fast = broadcaster.subscribe(maxsize=10)

    for i in range(5):
        broadcaster.log("task-1", f"line {i}")

    assert slow.dropped == 3
    assert [e.payload["message"] for e in slow.drain()] == ["line 0", "line 1"]
    assert len(fast.drain()) == 5


@pytest.mark.asyncio
async def test_unsubscribed_queue_stops_receiving():
    broadcaster = EventBroadcaster(queue_size=4)
    sub = broadcaster.subscribe()
    broadcaster.unsubscribe(sub)

    broadcaster.tokens({"total": 1, "tokens_per_second": 0.5})

    assert broadcaster.subscriber_count == 0
    assert sub.drain() == []


@pytest.mark.asyncio
async def test_publish_from_worker_thread():
    broadcaster = EventBroadcaster(queue_size=4)
    sub = broadcaster.subscribe()

    thread = threading.Thread(target=broadcaster.subtask_exhausted, args=("task-9", 2, 40, "continue"))
    thread.start()
    thread.join()

    event = await asyncio.wait_for(sub.get(), timeout=1)
    assert event.type == EventType.SUBTASK_EXHAUSTED
    assert event.payload == {"subtask_id": 2, "iterations": 40, "policy": "continue"}


def test_event_to_dict():
    data = Event(EventType.ACTION, {"action": "nop"}, "task-1").to_dict()
    assert data["type"] == "action"
    assert data["task_id"] == "task-1"
    assert data["payload"] == {"action": "nop"}
