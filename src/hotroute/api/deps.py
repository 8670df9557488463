"""FastAPI dependencies."""

from fastapi import Request

from hotroute.events import EventBus
from hotroute.reload import HotReloadCoordinator
from hotroute.state import StateStore


async def get_coordinator(request: Request) -> HotReloadCoordinator:
    """Get the coordinator instance from app state."""
    return request.app.state.coordinator


async def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


async def get_store(request: Request) -> StateStore:
    return request.app.state.store
