"""Notifier tests — fan-out, bounded queues, isolation, shutdown."""

import asyncio

import pytest
from structlog.testing import CapturingLogger

from houseboard.realtime import notifier as notifier_module
from houseboard.realtime.notifier import Notifier

MSG = {"type": "newPoints", "data": {"id": "1"}}


@pytest.mark.asyncio
async def test_broadcast_with_no_subscribers_is_a_no_op(notifier):
    assert notifier.broadcast(MSG) == 0


@pytest.mark.asyncio
async def test_every_subscriber_receives_once(notifier):
    subs = [notifier.subscribe(label=f"c{i}") for i in range(3)]
    assert notifier.broadcast(MSG) == 3
    for sub in subs:
        assert await sub.get() == MSG
        assert sub._queue.empty()


@pytest.mark.asyncio
async def test_no_replay_for_late_subscribers(notifier):
    notifier.broadcast(MSG)
    late = notifier.subscribe()
    assert late._queue.empty()


@pytest.mark.asyncio
async def test_full_queue_drops_only_for_that_subscriber():
    notifier = Notifier(queue_size=2)
    slow = notifier.subscribe(label="slow")
    fast = notifier.subscribe(label="fast")

    for i in range(3):
        notifier.broadcast({"n": i})
        assert await fast.get() == {"n": i}

    assert slow.dropped == 1
    assert await slow.get() == {"n": 0}
    assert await slow.get() == {"n": 1}


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_affect_others(notifier):
    broken = notifier.subscribe(label="broken")
    healthy = notifier.subscribe(label="healthy")

    def explode(message):
        raise RuntimeError("socket gone")

    broken.deliver = explode

    assert notifier.broadcast(MSG) == 1
    assert await healthy.get() == MSG


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery(notifier):
    sub = notifier.subscribe()
    notifier.unsubscribe(sub)
    assert notifier.subscriber_count == 0
    assert notifier.broadcast(MSG) == 0
    assert await sub.get() is None


@pytest.mark.asyncio
async def test_subscription_closed_after_snapshot_is_not_reported_as_drop(notifier, monkeypatch):
    log = CapturingLogger()
    monkeypatch.setattr(notifier_module, "logger", log)
    leaving = notifier.subscribe()
    staying = notifier.subscribe()
    leaving.close()  # closed, but still in the registry snapshot

    assert notifier.broadcast(MSG) == 1
    assert leaving.dropped == 0
    assert [c.args[0] for c in log.calls if c.method_name == "warning"] == []
    assert await staying.get() == MSG


@pytest.mark.asyncio
async def test_full_queue_drop_is_logged(monkeypatch):
    log = CapturingLogger()
    monkeypatch.setattr(notifier_module, "logger", log)
    notifier = Notifier(queue_size=1)
    notifier.subscribe()
    notifier.broadcast({"n": 1})
    notifier.broadcast({"n": 2})

    warnings = [c.args[0] for c in log.calls if c.method_name == "warning"]
    assert warnings == ["notifier.message_dropped"]


@pytest.mark.asyncio
async def test_unsubscribe_during_broadcast_is_safe(notifier):
    first = notifier.subscribe()
    second = notifier.subscribe()

    original = first.deliver

    def deliver_and_leave(message):
        notifier.unsubscribe(second)
        return original(message)

    first.deliver = deliver_and_leave
    notifier.broadcast(MSG)

    assert notifier.subscriber_count == 1
    assert await first.get() == MSG


@pytest.mark.asyncio
async def test_close_wakes_blocked_readers(notifier):
    sub = notifier.subscribe()
    reader = asyncio.create_task(sub.get())
    await asyncio.sleep(0)

    notifier.close()

    assert await asyncio.wait_for(reader, timeout=1) is None
    assert notifier.subscriber_count == 0


@pytest.mark.asyncio
async def test_close_on_full_queue_still_ends_iteration():
    notifier = Notifier(queue_size=1)
    sub = notifier.subscribe()
    notifier.broadcast(MSG)
    notifier.close()

    received = [m async for m in sub]
    assert received == []


@pytest.mark.asyncio
async def test_async_iteration_yields_in_order(notifier):
    sub = notifier.subscribe()
    for i in range(3):
        notifier.broadcast({"n": i})
    sub.close()

    assert [m["n"] async for m in sub] == [0, 1, 2]
