"""Reload statistics."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class ReloadStats:
    """Running totals over every route reload the coordinator performed.

    The average covers failed reloads as well as successful ones.
    """

    total_reloads: int = 0
    successful_reloads: int = 0
    failed_reloads: int = 0
    average_reload_time_ms: float = 0.0
    total_reload_time_ms: float = 0.0
    last_reload_at: datetime | None = None

    def record(self, success: bool, duration_ms: float) -> None:
        self.total_reloads += 1
        if success:
            self.successful_reloads += 1
        else:
            self.failed_reloads += 1
        self.total_reload_time_ms += duration_ms
        self.average_reload_time_ms = self.total_reload_time_ms / self.total_reloads
        self.last_reload_at = datetime.now(UTC)

    def snapshot(self) -> "ReloadStats":
        return ReloadStats(**self.__dict__)


@dataclass
class RouteReloadResult:
    """Outcome of reloading one route, after retries."""

    route: str
    success: bool
    duration_ms: float
    retries: int = 0
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
