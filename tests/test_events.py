"""Tests for the event bus system."""

import asyncio

import pytest

from hotroute.events import Event, EventBus, EventType


@pytest.fixture
def event_bus_fixture() -> EventBus:
    """Create a fresh event bus for each test."""
    return EventBus()


async def test_subscribe_and_receive(event_bus_fixture: EventBus) -> None:
    """Test that subscribers receive published events."""
    queue = await event_bus_fixture.subscribe("test-sub-1")

    event = Event.route_updated("/api/users", "/app/pages/api/users.py")
    await event_bus_fixture.publish(event)

    received = await asyncio.wait_for(queue.get(), timeout=1.0)
    assert received.type == EventType.ROUTE_UPDATED
    assert received.data["routePath"] == "/api/users"


async def test_unsubscribe(event_bus_fixture: EventBus) -> None:
    """Test that unsubscribed clients don't receive events."""
    queue = await event_bus_fixture.subscribe("test-sub-2")
    await event_bus_fixture.unsubscribe("test-sub-2")

    await event_bus_fixture.publish(Event.reload_error("/app/api/a.py", "boom", 0))

    assert queue.empty()
    assert event_bus_fixture.subscriber_count == 0


async def test_slow_subscriber_drops_oldest() -> None:
    """A full client queue keeps the newest notifications."""
    bus = EventBus(queue_size=2)
    queue = await bus.subscribe("slow")

    for name in ("a", "b", "c"):
        await bus.publish(Event.route_updated(f"/api/{name}", f"/app/pages/api/{name}.py"))

    assert queue.qsize() == 2
    assert queue.get_nowait().data["routePath"] == "/api/b"
    assert queue.get_nowait().data["routePath"] == "/api/c"


async def test_multiple_subscribers(event_bus_fixture: EventBus) -> None:
    """Test that multiple subscribers all receive events."""
    queues = [await event_bus_fixture.subscribe(f"sub-{i}") for i in range(3)]
    assert event_bus_fixture.subscriber_count == 3

    await event_bus_fixture.publish(Event.dependency_updated("/app/lib/db.py", ["/api/a", "/api/b"]))

    for queue in queues:
        received = await asyncio.wait_for(queue.get(), timeout=1.0)
        assert received.data["affectedRoutes"] == ["/api/a", "/api/b"]


async def test_callback_execution(event_bus_fixture: EventBus) -> None:
    """Test that callbacks are called for events."""
    received_events: list[Event] = []

    def callback(event: Event) -> None:
        received_events.append(event)

    event_bus_fixture.add_callback(callback)
    await event_bus_fixture.publish(Event.infrastructure_updated("/app/pyproject.toml", True))

    assert len(received_events) == 1
    assert received_events[0].type == EventType.CONFIG_UPDATED


async def test_async_callback(event_bus_fixture: EventBus) -> None:
    """Test that async callbacks work correctly."""
    received: list[Event] = []

    async def async_callback(event: Event) -> None:
        await asyncio.sleep(0.01)
        received.append(event)

    event_bus_fixture.add_callback(async_callback)
    await event_bus_fixture.publish(Event.route_updated("/api", "/app/pages/api/index.py"))

    assert len(received) == 1
    assert received[0].data["routePath"] == "/api"


async def test_failing_callback_does_not_stop_delivery(event_bus_fixture: EventBus) -> None:
    received: list[Event] = []

    def broken(event: Event) -> None:
        raise RuntimeError("subscriber failed")

    event_bus_fixture.add_callback(broken)
    event_bus_fixture.add_callback(received.append)

    await event_bus_fixture.publish(Event.reload_error("/app/pages/api/a.py", "boom", 2))

    assert len(received) == 1


def test_event_to_json() -> None:
    """Wire form carries the event name next to the payload."""
    event = Event.route_updated("/api/posts/:id", "/app/pages/api/posts/[id].py")

    assert event.to_json() == {
        "event": "route-updated",
        "routePath": "/api/posts/:id",
        "filePath": "/app/pages/api/posts/[id].py",
    }


def test_infrastructure_events() -> None:
    env = Event.infrastructure_updated("/app/.env", requires_restart=False)
    config = Event.infrastructure_updated("/app/pyproject.toml", requires_restart=True)

    assert env.to_json() == {"event": "env-updated", "filePath": "/app/.env", "requiresRestart": False}
    assert config.type == EventType.CONFIG_UPDATED
    assert config.data["requiresRestart"] is True


def test_event_type_values() -> None:
    """Test that EventType enum has expected values."""
    assert EventType.ROUTE_UPDATED.value == "route-updated"
    assert EventType.DEPENDENCY_UPDATED.value == "dependency-updated"
    assert EventType.RELOAD_ERROR.value == "reload-error"
