import asyncio

from dcim.services.event_bus import COLORS_UPDATED, ENUMS_UPDATED, SCHEMA_UPDATED, EventBus
from dcim.services.schema_cache import FormSchemaCache


def test_publish_calls_sync_and_async_handlers_in_order():
    bus = EventBus()
    calls = []

    def first(topic, payload):
        calls.append(("first", topic, payload))

    async def second(topic, payload):
        calls.append(("second", topic, payload))

    bus.subscribe(ENUMS_UPDATED, first)
    bus.subscribe(ENUMS_UPDATED, second)

    delivered = asyncio.run(bus.publish(ENUMS_UPDATED, {"enum_key": "os"}))
    assert delivered == 2
    assert calls == [
        ("first", ENUMS_UPDATED, {"enum_key": "os"}),
        ("second", ENUMS_UPDATED, {"enum_key": "os"}),
    ]


def test_topics_are_isolated():
    bus = EventBus()
    calls = []
    bus.subscribe(COLORS_UPDATED, lambda t, p: calls.append(t))
    assert asyncio.run(bus.publish(ENUMS_UPDATED)) == 0
    assert calls == []


def test_unsubscribe():
    bus = EventBus()
    calls = []
    handler = lambda t, p: calls.append(p)
    unsubscribe = bus.subscribe(SCHEMA_UPDATED, handler)
    assert bus.subscribers(SCHEMA_UPDATED) == [handler]

    unsubscribe()
    assert bus.subscribers(SCHEMA_UPDATED) == []
    asyncio.run(bus.publish(SCHEMA_UPDATED, 1))
    assert calls == []

    # a second call is harmless
    unsubscribe()


def test_failing_handler_does_not_stop_fanout():
    bus = EventBus()
    calls = []

    def broken(topic, payload):
        raise RuntimeError("boom")

    bus.subscribe(SCHEMA_UPDATED, broken)
    bus.subscribe(SCHEMA_UPDATED, lambda t, p: calls.append(p))

    assert asyncio.run(bus.publish(SCHEMA_UPDATED, "x")) == 1
    assert calls == ["x"]


def test_schema_cache_subscribes_and_invalidates():
    bus = EventBus()
    cache = FormSchemaCache(bus)
    assert cache.invalidate in bus.subscribers(SCHEMA_UPDATED)
    assert cache.invalidate in bus.subscribers(ENUMS_UPDATED)
    assert bus.subscribers(COLORS_UPDATED) == []

    for topic in (SCHEMA_UPDATED, ENUMS_UPDATED):
        cache._cached = object()
        asyncio.run(bus.publish(topic))
        assert cache._cached is None
