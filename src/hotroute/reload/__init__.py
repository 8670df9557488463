"""Hot-reload coordination for API route modules.

- Import graph tracking and reload strategy selection
- Debounced change batching with retries and timeouts
- Default polling watcher and importlib-based module reloader
"""

from hotroute.reload.coordinator import CoordinatorState, HotReloadCoordinator, ReloadExecutionError
from hotroute.reload.graph import DependencyEdge, DependencyTracker, EdgeKind, GraphInconsistencyError
from hotroute.reload.reloader import ModuleReloader, ReloadExecutor, ReloadOutcome
from hotroute.reload.scanner import ImportScanner
from hotroute.reload.stats import ReloadStats, RouteReloadResult
from hotroute.reload.strategy import (
    Full,
    InfrastructureKind,
    ReloadStrategy,
    Selective,
    Single,
    Skip,
    StrategyKind,
)
from hotroute.reload.watcher import FileChange, FileChangeWatcher, classify_infrastructure

__all__ = [
    "CoordinatorState",
    "DependencyEdge",
    "DependencyTracker",
    "EdgeKind",
    "FileChange",
    "FileChangeWatcher",
    "Full",
    "GraphInconsistencyError",
    "HotReloadCoordinator",
    "ImportScanner",
    "InfrastructureKind",
    "ModuleReloader",
    "ReloadExecutionError",
    "ReloadExecutor",
    "ReloadOutcome",
    "ReloadStats",
    "ReloadStrategy",
    "RouteReloadResult",
    "Selective",
    "Single",
    "Skip",
    "StrategyKind",
    "classify_infrastructure",
]
