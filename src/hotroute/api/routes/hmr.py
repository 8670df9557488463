"""Hot-reload diagnostics routes."""

import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from hotroute.api.deps import get_coordinator, get_event_bus, get_store
from hotroute.events import EventBus
from hotroute.reload import HotReloadCoordinator
from hotroute.state import StateStore

logger = logging.getLogger(__name__)
router = APIRouter()


class ReloadStatsResponse(BaseModel):
    """Reload statistics plus coordinator status."""

    total_reloads: int = Field(serialization_alias="totalReloads")
    successful_reloads: int = Field(serialization_alias="successfulReloads")
    failed_reloads: int = Field(serialization_alias="failedReloads")
    average_reload_time_ms: float = Field(serialization_alias="averageReloadTimeMs")
    last_reload_at: datetime | None = Field(default=None, serialization_alias="lastReloadAt")
    state: str
    pending: list[str]
    known_routes: int = Field(serialization_alias="knownRoutes")
    subscribers: int


class RouteReloadResponse(BaseModel):
    """One entry of the reload history."""

    route: str
    route_path: str = Field(serialization_alias="routePath")
    success: bool
    duration_ms: float = Field(serialization_alias="durationMs")
    retries: int
    error: str | None = None
    timestamp: datetime


@router.get("/stats")
async def get_stats(
    coordinator: Annotated[HotReloadCoordinator, Depends(get_coordinator)],
    event_bus: Annotated[EventBus, Depends(get_event_bus)],
) -> ReloadStatsResponse:
    """Get reload statistics."""
    stats = coordinator.get_stats()
    return ReloadStatsResponse(
        total_reloads=stats.total_reloads,
        successful_reloads=stats.successful_reloads,
        failed_reloads=stats.failed_reloads,
        average_reload_time_ms=round(stats.average_reload_time_ms, 3),
        last_reload_at=stats.last_reload_at,
        state=coordinator.state.value,
        pending=coordinator.pending,
        known_routes=len(coordinator.registry),
        subscribers=event_bus.subscriber_count,
    )


@router.get("/history")
async def get_history(
    coordinator: Annotated[HotReloadCoordinator, Depends(get_coordinator)],
    limit: int = Query(default=10, ge=1, le=100),
) -> list[RouteReloadResponse]:
    """Get the most recent route reloads."""
    return [
        RouteReloadResponse(
            route=result.route,
            route_path=coordinator.route_path_for(result.route),
            success=result.success,
            duration_ms=round(result.duration_ms, 3),
            retries=result.retries,
            error=result.error,
            timestamp=result.timestamp,
        )
        for result in coordinator.get_reload_history(limit)
    ]


@router.get("/graph")
async def get_graph(
    coordinator: Annotated[HotReloadCoordinator, Depends(get_coordinator)],
) -> dict[str, Any]:
    """Get the dependency graph and its summary statistics."""
    return {
        "stats": coordinator.tracker.stats(),
        "graph": coordinator.tracker.export_graph(),
    }


@router.get("/routes")
async def list_routes(
    coordinator: Annotated[HotReloadCoordinator, Depends(get_coordinator)],
) -> list[dict[str, str]]:
    """List known routes with their public paths."""
    return [
        {"filePath": path, "routePath": coordinator.route_path_for(path)}
        for path in coordinator.registry
    ]


@router.get("/state")
async def get_state_keys(
    store: Annotated[StateStore, Depends(get_store)],
    prefix: str = "",
) -> dict[str, Any]:
    """List live keys in the state store."""
    keys = store.keys(prefix)
    return {"size": len(keys), "keys": keys}
