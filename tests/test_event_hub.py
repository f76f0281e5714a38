# tests/test_event_hub.py

from __future__ import annotations

import asyncio

import pytest

from media_drop.events.hub import Event, EventHub


@pytest.mark.asyncio
async def test_publish_fans_out_to_every_subscriber() -> None:
    hub = EventHub()

    with hub.subscribe() as q1, hub.subscribe() as q2:
        assert hub.subscriber_count == 2
        hub.publish("message_sent", {"id": "a"})

        assert q1.get_nowait() == Event("message_sent", {"id": "a"})
        assert q2.get_nowait().to_dict() == {"event": "message_sent", "data": {"id": "a"}}

    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_sticky_event_is_replayed_to_late_subscribers() -> None:
    hub = EventHub()
    hub.publish("ready", False)
    hub.publish("ready", True)
    hub.publish("message_sent", {"id": "old"})

    with hub.subscribe() as queue:
        assert queue.get_nowait() == Event("ready", True)
        assert queue.empty()


@pytest.mark.asyncio
async def test_full_subscriber_queue_drops_instead_of_blocking() -> None:
    hub = EventHub(queue_size=2, sticky=())

    with hub.subscribe() as slow, hub.subscribe() as fast:
        for i in range(3):
            hub.publish("message_sent", {"id": str(i)})
            fast.get_nowait()

        assert slow.qsize() == 2
        assert [slow.get_nowait().data["id"] for _ in range(2)] == ["0", "1"]


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_a_noop() -> None:
    hub = EventHub()
    hub.publish("message_failed", {"id": "x", "error": "boom"})
    await asyncio.sleep(0)
    assert hub.subscriber_count == 0
