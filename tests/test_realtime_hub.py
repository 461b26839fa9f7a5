import asyncio

import pytest

from realtime.hub import RealtimeHub, TYPING_TTL_S, conversation_members, direct_conversation_id, typing_channel


def test_publish_delivers_to_channel_subscribers_only():
    hub = RealtimeHub()
    mine = hub.subscribe("notifications:1")
    other = hub.subscribe("notifications:2")

    assert hub.publish("notifications:1", "notification", {"id": 5}) == 1

    event = mine.get_nowait()
    assert event["channel"] == "notifications:1"
    assert event["event"] == "notification"
    assert event["payload"] == {"id": 5}
    assert "sent_at" in event
    assert other.get_nowait() is None


def test_full_queue_drops_oldest():
    hub = RealtimeHub(max_queue_size=2)
    sub = hub.subscribe("c")
    for i in range(3):
        hub.publish("c", "tick", {"i": i})

    assert sub.dropped == 1
    assert [sub.get_nowait()["payload"]["i"] for _ in range(2)] == [1, 2]


def test_unsubscribe_stops_delivery():
    hub = RealtimeHub()
    sub = hub.subscribe("c")
    sub.close()

    assert hub.publish("c", "tick") == 0
    assert hub.subscriber_count() == 0


def test_listener_errors_do_not_block_subscribers():
    hub = RealtimeHub()

    def broken(_event):
        raise RuntimeError("listener bug")

    hub.add_listener("c", broken)
    sub = hub.subscribe("c")

    assert hub.publish("c", "tick") == 1
    assert sub.get_nowait()["event"] == "tick"


def test_presence_track_and_untrack_publish_sync():
    hub = RealtimeHub()
    sub = hub.subscribe("presence:online")

    hub.track("presence:online", "7", {"online_at": "now"})
    assert sub.get_nowait()["payload"] == {"presence": {"7": {"online_at": "now"}}}

    hub.untrack("presence:online", "7")
    assert sub.get_nowait()["payload"] == {"presence": {}}
    assert hub.presence("presence:online") == {}


def test_typing_users_expire(clock):
    hub = RealtimeHub(clock=clock)
    sub = hub.subscribe(typing_channel("conv-1"))

    hub.set_typing("conv-1", 2, True)
    hub.set_typing("conv-1", 1, True)
    assert hub.typing_users("conv-1") == ["1", "2"]
    assert sub.get_nowait()["payload"] == {"user_id": "2", "is_typing": True}

    clock.advance(TYPING_TTL_S - 1)
    hub.set_typing("conv-1", 1, True)
    clock.advance(1)
    assert hub.typing_users("conv-1") == ["1"]

    hub.set_typing("conv-1", 1, False)
    assert hub.typing_users("conv-1") == []


@pytest.mark.asyncio
async def test_subscription_async_iteration_ends_after_close():
    hub = RealtimeHub()
    sub = hub.subscribe("c")
    hub.publish("c", "one")
    sub.close()

    events = [event["event"] async for event in sub]
    assert events == ["one"]


def test_presence_is_counted_per_key():
    hub = RealtimeHub()
    hub.track("presence:online", "7", {"tab": 1})
    hub.track("presence:online", "7", {"tab": 2})

    hub.untrack("presence:online", "7")
    assert "7" in hub.presence("presence:online")

    hub.untrack("presence:online", "7")
    assert hub.presence("presence:online") == {}


def test_expired_typing_entries_are_swept(clock):
    hub = RealtimeHub(clock=clock)
    for conversation in range(1000):
        hub.set_typing(f"{conversation}-5000", 5000, True)
    assert hub.typing_count() == 1000

    clock.advance(3600)
    hub.set_typing("1-2", 1, True)
    assert hub.typing_count() == 1

    clock.advance(3600)
    assert hub.sweep_typing() == 1
    assert hub.typing_count() == 0


def test_direct_conversation_ids():
    assert direct_conversation_id(7, 3) == "3-7"
    assert conversation_members("3-7") == {3, 7}
    assert conversation_members("abc") == set()
    assert conversation_members("7") == set()


@pytest.mark.asyncio
async def test_close_wakes_a_waiting_consumer():
    hub = RealtimeHub()
    sub = hub.subscribe("c")

    async def consume():
        return [event["event"] async for event in sub]

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    hub.publish("c", "one")
    await asyncio.sleep(0)
    sub.close()

    assert await asyncio.wait_for(consumer, timeout=1) == ["one"]
