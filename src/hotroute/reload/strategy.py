"""Reload strategies produced by the dependency tracker."""

from dataclasses import dataclass, field
from enum import Enum


class StrategyKind(str, Enum):
    """How much of the application a change invalidates."""

    SKIP = "skip"
    SINGLE = "single"
    SELECTIVE = "selective"
    FULL = "full"


class InfrastructureKind(str, Enum):
    """Non-module files that affect every route."""

    ENV = "env"
    CONFIG = "config"


@dataclass(frozen=True)
class ReloadStrategy:
    """Base class for the reload decision on one changed file."""

    kind = StrategyKind.SKIP

    @property
    def routes(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Skip(ReloadStrategy):
    """No known route is affected."""

    kind = StrategyKind.SKIP


@dataclass(frozen=True)
class Single(ReloadStrategy):
    """Exactly one route must be reloaded."""

    route: str
    kind = StrategyKind.SINGLE

    @property
    def routes(self) -> tuple[str, ...]:
        return (self.route,)


@dataclass(frozen=True)
class Selective(ReloadStrategy):
    """Several routes share the changed dependency.

    Routes are ordered by discovery during the dependents traversal.
    """

    affected: tuple[str, ...]
    kind = StrategyKind.SELECTIVE

    @property
    def routes(self) -> tuple[str, ...]:
        return self.affected


@dataclass(frozen=True)
class Full(ReloadStrategy):
    """Shared infrastructure changed; every route is stale."""

    reason: str
    file_path: str = ""
    infrastructure: InfrastructureKind = InfrastructureKind.CONFIG
    kind = StrategyKind.FULL

    @property
    def requires_restart(self) -> bool:
        """Environment files can be re-applied in place; other config cannot."""
        return self.infrastructure is not InfrastructureKind.ENV


@dataclass
class ResolvedBatch:
    """The merged outcome of resolving every path in a debounce batch.

    full is the dominating infrastructure change; env_changes lists every
    environment file in the batch, in batch order.
    """

    strategies: list[tuple[str, ReloadStrategy]] = field(default_factory=list)
    full: Full | None = None
    env_changes: list[Full] = field(default_factory=list)
    routes: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.full is None and not self.routes
