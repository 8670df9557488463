"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hotroute import __version__
from hotroute.api.routes import hmr, ws
from hotroute.events import EventBus, event_bus
from hotroute.reload import FileChangeWatcher, HotReloadCoordinator
from hotroute.state import StateStore, get_state_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Starting hotroute API...")
    coordinator: HotReloadCoordinator = app.state.coordinator
    watcher: FileChangeWatcher | None = app.state.watcher
    watch_task: asyncio.Task | None = None

    if watcher is not None:
        watch_task = asyncio.create_task(
            watcher.watch_loop(
                lambda change: coordinator.on_file_changed(change.path),
                poll_interval=app.state.poll_interval,
            )
        )
        logger.info(f"Watching {len(watcher.watch_dirs)} directories for changes")

    yield

    logger.info("Shutting down hotroute API...")
    if watch_task is not None:
        watcher.stop()
        watch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watch_task
    await coordinator.close()


def create_app(
    coordinator: HotReloadCoordinator,
    watcher: FileChangeWatcher | None = None,
    bus: EventBus | None = None,
    store: StateStore | None = None,
    poll_interval: float = 0.5,
) -> FastAPI:
    """Create the diagnostics/notification application for a coordinator."""
    app = FastAPI(
        title="hotroute",
        description="Hot-reload diagnostics and notifications for API routes",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.coordinator = coordinator
    app.state.watcher = watcher
    app.state.event_bus = bus or coordinator.event_bus or event_bus
    app.state.store = store if store is not None else get_state_store()
    app.state.poll_interval = poll_interval

    app.include_router(hmr.router, prefix="/api/hmr", tags=["hmr"])
    app.include_router(ws.router, prefix="/ws", tags=["websocket"])

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
