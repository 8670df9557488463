"""Hot-reload coordination for API routes.

Flow:
1. Collect file-change events, restarting a debounce timer on each one
2. When the timer fires, refresh the import graph for the changed files
3. Ask the dependency tracker for a strategy per file and merge them
4. Reload every affected route through the executor, with retries
5. Record statistics and publish one notification per outcome

Batches run one at a time. A change that arrives while a batch is
reloading is collected into the next batch; in-flight reloads are never
interrupted.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from hotroute.config import HotReloadConfig
from hotroute.events import Event, EventBus
from hotroute.paths import normalize_path
from hotroute.reload.graph import DependencyTracker
from hotroute.reload.reloader import ModuleReloader, ReloadExecutor
from hotroute.reload.scanner import ImportScanner
from hotroute.reload.stats import ReloadStats, RouteReloadResult
from hotroute.reload.strategy import (
    Full,
    InfrastructureKind,
    ResolvedBatch,
    Selective,
    Single,
)
from hotroute.reload.watcher import classify_infrastructure
from hotroute.routes import RouteRegistry

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 200.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_MS = 100.0
DEFAULT_RELOAD_TIMEOUT = 10.0


class CoordinatorState(str, Enum):
    """Where the coordinator is in the current batch."""

    IDLE = "idle"
    COLLECTING = "collecting"
    RESOLVING = "resolving"
    RELOADING = "reloading"


class ReloadExecutionError(Exception):
    """Raised when the executor fails or times out reloading a route."""

    def __init__(self, path: str, reason: str, retries: int = 0):
        self.path = path
        self.reason = reason
        self.retries = retries
        super().__init__(f"Reload of {path} failed: {reason}")


class HotReloadCoordinator:
    """Turns bursts of file changes into ordered route reloads."""

    def __init__(
        self,
        tracker: DependencyTracker,
        registry: RouteRegistry,
        executor: ReloadExecutor,
        event_bus: EventBus | None = None,
        *,
        scanner: ImportScanner | None = None,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS,
        reload_timeout: float = DEFAULT_RELOAD_TIMEOUT,
        env_files: list[str] | None = None,
        config_files: list[str] | None = None,
        history_size: int = 50,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {max_retries}")

        self.tracker = tracker
        self.registry = registry
        self.executor = executor
        self.event_bus = event_bus
        self.scanner = scanner

        self.debounce_ms = debounce_ms
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.reload_timeout = reload_timeout
        self.env_files = env_files if env_files is not None else [".env", ".env.*"]
        self.config_files = config_files if config_files is not None else ["pyproject.toml", "hotroute.toml"]

        self.state = CoordinatorState.IDLE
        self._pending: dict[str, None] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._batch_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

        self._stats = ReloadStats()
        self._history: deque[RouteReloadResult] = deque(maxlen=history_size)

    @classmethod
    def from_config(
        cls,
        config: HotReloadConfig,
        executor: ReloadExecutor | None = None,
        event_bus: EventBus | None = None,
    ) -> "HotReloadCoordinator":
        """Build a coordinator with discovered routes and an indexed import graph."""
        registry = RouteRegistry(config.api_dir, config.api_prefix)
        registry.discover()

        coordinator = cls(
            DependencyTracker(),
            registry,
            executor or ModuleReloader(config.search_roots),
            event_bus,
            scanner=ImportScanner(config.search_roots, track_external=config.track_external),
            debounce_ms=config.debounce_ms,
            max_retries=config.max_retries,
            retry_delay_ms=config.retry_delay_ms,
            reload_timeout=config.reload_timeout,
            env_files=config.env_files,
            config_files=config.config_files,
        )
        coordinator.rebuild_graph(config.watch_dirs)
        return coordinator

    @property
    def pending(self) -> list[str]:
        """Paths collected for the next batch."""
        return list(self._pending)

    def classify(self, path: str | Path) -> InfrastructureKind | None:
        return classify_infrastructure(path, self.env_files, self.config_files)

    def file_path_to_route(self, file_path: str | Path) -> str:
        return self.registry.file_path_to_route(file_path)

    def rebuild_graph(self, directories: Iterable[str | Path]) -> int:
        """Index every Python file under directories into the tracker.

        Returns:
            Number of files indexed.
        """
        if self.scanner is None:
            return 0

        self.scanner.clear_cache()
        count = 0
        for directory in directories:
            for path, edges in self.scanner.scan_directory(directory):
                self.tracker.update_dependency_graph(path, edges)
                count += 1

        logger.info(f"Indexed {count} files into the dependency graph")
        return count

    # Collecting

    def on_file_changed(self, path: str | Path) -> None:
        """Queue a changed path for the next batch and (re)start the debounce timer.

        Must be called from within the running event loop. Returns at once.
        """
        loop = asyncio.get_running_loop()
        self._pending[normalize_path(path)] = None

        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_ms / 1000, self._on_debounce_elapsed)

        if self.state is CoordinatorState.IDLE:
            self.state = CoordinatorState.COLLECTING

    def _on_debounce_elapsed(self) -> None:
        self._timer = None
        if not self._pending:
            return

        batch = list(self._pending)
        self._pending.clear()
        logger.debug(f"Debounce elapsed, processing {len(batch)} changed files")

        task = asyncio.create_task(self._run_batch(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> None:
        """Process pending changes now and wait for every batch to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._on_debounce_elapsed()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no batch is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Drop pending changes and wait for in-flight batches."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()
        await self.wait_idle()
        self.state = CoordinatorState.IDLE

    # Resolving

    def _refresh_graph(self, batch: list[str]) -> None:
        """Rescan changed modules and keep the route registry in step with the disk.

        Without a scanner the graph is maintained by the caller and nothing
        here touches the file system.
        """
        if self.scanner is None:
            return

        for path in batch:
            if self.classify(path) is not None or not path.endswith(".py"):
                continue

            exists = Path(path).is_file()
            if exists:
                self.tracker.update_dependency_graph(path, self.scanner.scan_file(path))
            else:
                self.tracker.remove_file(path)

            if not exists and path in self.registry:
                self.registry.remove(path)
                logger.info(f"Route removed: {path}")
            elif exists and path not in self.registry and self._is_new_route(path):
                self.registry.add(path)
                logger.info(f"Route added: {path}")

    def _is_new_route(self, path: str) -> bool:
        file_path = Path(path)
        if file_path.name.startswith("_"):
            return False
        try:
            file_path.relative_to(normalize_path(self.registry.api_dir))
        except ValueError:
            return False
        return True

    def resolve_batch(self, batch: Iterable[str | Path]) -> ResolvedBatch:
        """Merge the strategies of every path in a batch.

        Full dominates (a config change over an env change); otherwise the
        routes of all Single and Selective strategies are unioned in
        first-seen order.
        """
        known_routes = self.registry.known_routes()
        resolved = ResolvedBatch()
        routes: dict[str, None] = {}

        for raw_path in batch:
            path = normalize_path(raw_path)
            strategy = self.tracker.determine_reload_strategy(path, known_routes, self.classify(path))
            resolved.strategies.append((path, strategy))

            if isinstance(strategy, Full):
                if strategy.infrastructure is InfrastructureKind.ENV:
                    resolved.env_changes.append(strategy)
                if resolved.full is None or (
                    strategy.requires_restart and not resolved.full.requires_restart
                ):
                    resolved.full = strategy
                continue

            for route in strategy.routes:
                routes.setdefault(route, None)

        if resolved.full is not None:
            resolved.routes = list(self.registry)
        else:
            resolved.routes = list(routes)
        return resolved

    async def _run_batch(self, batch: list[str]) -> None:
        async with self._batch_lock:
            self.state = CoordinatorState.RESOLVING
            try:
                # Graph mutation and strategy computation stay free of awaits,
                # so a batch always sees a consistent graph.
                self._refresh_graph(batch)
                resolved = self.resolve_batch(batch)

                self.state = CoordinatorState.RELOADING
                await self._execute(resolved)
            except Exception:
                logger.exception(f"Hot-reload batch failed for {len(batch)} files")
            finally:
                # Other tasks in _tasks are batches queued behind this one.
                queued = self._pending or len(self._tasks) > 1
                self.state = CoordinatorState.COLLECTING if queued else CoordinatorState.IDLE

    # Reloading

    async def _execute(self, resolved: ResolvedBatch) -> None:
        if resolved.is_empty:
            logger.debug("No API routes affected by this batch")
            return

        full = resolved.full
        if full is not None:
            logger.info(f"Full reload: {full.reason}")
            for env_change in resolved.env_changes:
                self._apply_env_file(env_change.file_path)
        else:
            logger.info(f"Reloading {len(resolved.routes)} routes")

        results: dict[str, RouteReloadResult] = {}
        for route in resolved.routes:
            result = await self._reload_route(route)
            results[route] = result
            if not result.success:
                await self._publish(Event.reload_error(route, result.error or "", result.retries))

        if full is not None and full.requires_restart:
            await self._publish(Event.infrastructure_updated(full.file_path, True))
            return
        if full is not None:
            for env_change in resolved.env_changes:
                await self._publish(Event.infrastructure_updated(env_change.file_path, False))
            return

        await self._notify_outcomes(resolved, results)

    async def _notify_outcomes(
        self,
        resolved: ResolvedBatch,
        results: dict[str, RouteReloadResult],
    ) -> None:
        notified_routes: set[str] = set()

        for path, strategy in resolved.strategies:
            if isinstance(strategy, Single):
                route = strategy.route
                if route in notified_routes or not results[route].success:
                    continue
                notified_routes.add(route)
                await self._publish(Event.route_updated(self.route_path_for(route), route))

            elif isinstance(strategy, Selective):
                reloaded = [self.route_path_for(r) for r in strategy.routes if results[r].success]
                if reloaded:
                    await self._publish(Event.dependency_updated(path, reloaded))

    def route_path_for(self, file_path: str) -> str:
        """Public route path of file_path, or the path itself if it is outside the API directory."""
        try:
            return self.file_path_to_route(file_path)
        except ValueError:
            return file_path

    async def _attempt_reload(self, route: str) -> None:
        try:
            outcome = await asyncio.wait_for(self.executor.reload(route), timeout=self.reload_timeout)
        except TimeoutError as e:
            raise ReloadExecutionError(route, f"timed out after {self.reload_timeout}s") from e
        except Exception as e:
            raise ReloadExecutionError(route, f"{type(e).__name__}: {e}") from e

        if not outcome.success:
            raise ReloadExecutionError(route, outcome.error or "reload failed")

    async def _reload_route(self, route: str) -> RouteReloadResult:
        """Reload one route, retrying up to max_retries times."""
        start = time.perf_counter()
        error: ReloadExecutionError | None = None

        for attempt in range(self.max_retries + 1):
            if attempt:
                logger.info(f"Retrying reload for {route} (attempt {attempt + 1})")
                await asyncio.sleep(self.retry_delay_ms * attempt / 1000)
            try:
                await self._attempt_reload(route)
            except ReloadExecutionError as e:
                e.retries = attempt
                error = e
                logger.warning(str(e))
                continue

            duration_ms = (time.perf_counter() - start) * 1000
            self.update_reload_stats(True, duration_ms)
            logger.info(f"Reloaded route {self.route_path_for(route)} in {duration_ms:.2f}ms")
            return self._remember(RouteReloadResult(route, True, duration_ms, retries=attempt))

        duration_ms = (time.perf_counter() - start) * 1000
        self.update_reload_stats(False, duration_ms)
        logger.error(f"Max retries exceeded for {route}: {error.reason}")
        return self._remember(
            RouteReloadResult(route, False, duration_ms, retries=error.retries, error=error.reason)
        )

    def _remember(self, result: RouteReloadResult) -> RouteReloadResult:
        self._history.append(result)
        return result

    def _apply_env_file(self, path: str) -> None:
        if not Path(path).is_file():
            logger.warning(f"Environment file {path} no longer exists")
            return
        load_dotenv(path, override=True)
        logger.info(f"Reloaded environment variables from {path}")

    async def _publish(self, event: Event) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.publish(event)

    # Statistics

    def update_reload_stats(self, success: bool, duration_ms: float) -> None:
        """Record one route reload in the running statistics."""
        self._stats.record(success, duration_ms)

    def get_stats(self) -> ReloadStats:
        """Snapshot of the reload statistics."""
        return self._stats.snapshot()

    def get_reload_history(self, limit: int = 10) -> list[RouteReloadResult]:
        """Most recent route reload results, oldest first."""
        return list(self._history)[-limit:]
