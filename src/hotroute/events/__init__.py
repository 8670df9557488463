"""Notification events for hot-reload clients."""

from hotroute.events.bus import EventBus, event_bus
from hotroute.events.types import Event, EventType

__all__ = ["Event", "EventBus", "EventType", "event_bus"]
