"""Notification event definitions for the event bus."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Hot-reload notifications sent to connected clients."""

    ROUTE_UPDATED = "route-updated"
    DEPENDENCY_UPDATED = "dependency-updated"
    CONFIG_UPDATED = "config-updated"
    ENV_UPDATED = "env-updated"
    RELOAD_ERROR = "reload-error"


class Event(BaseModel):
    """A broadcast event."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Wire form: ``{"event": <type>, **data}``."""
        return {"event": self.type.value, **self.data}

    @classmethod
    def route_updated(cls, route_path: str, file_path: str) -> "Event":
        return cls(
            type=EventType.ROUTE_UPDATED,
            data={"routePath": route_path, "filePath": file_path},
        )

    @classmethod
    def dependency_updated(cls, dependency: str, affected_routes: list[str]) -> "Event":
        return cls(
            type=EventType.DEPENDENCY_UPDATED,
            data={"dependency": dependency, "affectedRoutes": list(affected_routes)},
        )

    @classmethod
    def infrastructure_updated(cls, file_path: str, requires_restart: bool) -> "Event":
        event_type = EventType.CONFIG_UPDATED if requires_restart else EventType.ENV_UPDATED
        return cls(
            type=event_type,
            data={"filePath": file_path, "requiresRestart": requires_restart},
        )

    @classmethod
    def reload_error(cls, file_path: str, error: str, retries: int) -> "Event":
        return cls(
            type=EventType.RELOAD_ERROR,
            data={"filePath": file_path, "error": error, "retries": retries},
        )
