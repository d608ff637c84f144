"""Tests for the Event Bus."""

import pytest
from backman.core.bus import EventBus
from backman.core.events import Event, EventType


@pytest.mark.asyncio
async def test_emit_and_subscribe(bus: EventBus):
    """Basic pub/sub works."""
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on(EventType.TASK_LAUNCHED, handler)
    await bus.emit(Event(type=EventType.TASK_LAUNCHED, data={"task_name": "x"}))

    assert len(received) == 1
    assert received[0].data == {"task_name": "x"}


@pytest.mark.asyncio
async def test_wildcard_subscription(bus: EventBus):
    """Wildcard 'task:*' matches 'task:launched'."""
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on("task:*", handler)

    await bus.emit(Event(type=EventType.TASK_LAUNCHED))
    await bus.emit(Event(type=EventType.TASK_FAILED))
    await bus.emit(Event(type=EventType.SCHEDULER_TICK))  # should NOT match

    assert received == ["task:launched", "task:failed"]


@pytest.mark.asyncio
async def test_catch_all_subscription(bus: EventBus):
    """Wildcard '*' matches everything."""
    received = []

    async def handler(event: Event):
        received.append(event.type)

    bus.on(EventType.ALL, handler)

    await bus.emit(Event(type=EventType.SCHEDULER_START))
    await bus.emit(Event(type=EventType.STORE_ERROR))

    assert received == ["scheduler:start", "store:error"]


@pytest.mark.asyncio
async def test_unsubscribe(bus: EventBus):
    received = []

    async def handler(event: Event):
        received.append(event)

    bus.on(EventType.SCHEDULER_TICK, handler)
    bus.off(EventType.SCHEDULER_TICK, handler)
    await bus.emit(Event(type=EventType.SCHEDULER_TICK))

    assert received == []
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_failing_subscriber_is_isolated(bus: EventBus):
    """One broken subscriber does not stop the others or the emitter."""
    received = []

    async def broken(event: Event):
        raise RuntimeError("boom")

    async def healthy(event: Event):
        received.append(event)

    bus.on(EventType.TASK_FAILED, broken)
    bus.on(EventType.TASK_FAILED, healthy)

    event = await bus.emit(Event(type=EventType.TASK_FAILED))

    assert received == [event]


def test_event_defaults():
    event = Event(type=EventType.SCHEDULER_STOP)
    assert event.data == {}
    assert len(event.id) == 16
    assert event.timestamp > 0
