import asyncio

from apistress.runtime.progress import ProgressBroadcaster


def test_every_observer_gets_each_event():
    async def go():
        b = ProgressBroadcaster()
        q1 = b.subscribe()
        q2 = b.subscribe()

        b.publish("a")
        b.publish("b")

        return [q1.get_nowait(), q1.get_nowait()], [q2.get_nowait(), q2.get_nowait()]

    first, second = asyncio.run(go())

    assert first == ["a", "b"]
    assert second == ["a", "b"]


def test_late_subscriber_only_sees_later_events():
    async def go():
        b = ProgressBroadcaster()
        early = b.subscribe()
        b.publish(1)
        late = b.subscribe()
        b.publish(2)
        return early.qsize(), late.get_nowait(), late.empty()

    early_size, late_event, late_empty = asyncio.run(go())

    assert early_size == 2
    assert late_event == 2
    assert late_empty is True


def test_full_observer_is_dropped_without_affecting_others():
    async def go():
        b = ProgressBroadcaster()
        slow = b.subscribe(max_queue_size=1)
        fast = b.subscribe()

        b.publish(1)
        b.publish(2)  # slow is full here
        b.publish(3)

        return b.observer_count, slow.qsize(), slow.get_nowait(), [fast.get_nowait() for _ in range(3)]

    count, slow_size, slow_last, fast_events = asyncio.run(go())

    assert count == 1
    assert slow_size == 1
    assert slow_last is None
    assert fast_events == [1, 2, 3]


def test_unsubscribe_stops_delivery():
    async def go():
        b = ProgressBroadcaster()
        q = b.subscribe()
        b.unsubscribe(q)
        b.unsubscribe(q)
        b.publish("x")
        return b.observer_count, q.empty()

    assert asyncio.run(go()) == (0, True)


def test_close_ends_every_stream():
    async def go():
        b = ProgressBroadcaster()
        q = b.subscribe()
        full = b.subscribe(max_queue_size=1)
        b.publish("last")
        b.close()

        drained = []
        while True:
            item = await q.get()
            if item is None:
                break
            drained.append(item)
        return drained, full.get_nowait(), b.observer_count

    drained, full_item, count = asyncio.run(go())

    assert drained == ["last"]
    assert full_item is None
    assert count == 0


def test_dropped_observer_stream_still_ends():
    async def go():
        b = ProgressBroadcaster()
        q = b.subscribe(max_queue_size=1)
        b.publish("a")
        b.publish("b")
        b.close()

        seen = []
        while True:
            item = await asyncio.wait_for(q.get(), timeout=1.0)
            if item is None:
                break
            seen.append(item)
        return seen

    # the dropped queue ends with None instead of leaving its reader waiting
    assert asyncio.run(go()) == []
