"""WebSocket endpoint for hot-reload notifications."""

import asyncio
import contextlib
import json
import logging
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from hotroute.events import EventBus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/hmr")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint streaming hot-reload notifications.

    Each message is one of:
    - {"event": "route-updated", "routePath": ..., "filePath": ...}
    - {"event": "dependency-updated", "dependency": ..., "affectedRoutes": [...]}
    - {"event": "config-updated" | "env-updated", "filePath": ..., "requiresRestart": bool}
    - {"event": "reload-error", "filePath": ..., "error": ..., "retries": n}

    Clients can send {"action": "ping"} and receive {"action": "pong"}.
    """
    await websocket.accept()

    event_bus: EventBus = websocket.app.state.event_bus
    subscriber_id = f"ws-{uuid4().hex[:8]}"
    logger.info(f"WebSocket connected: {subscriber_id}")

    queue = await event_bus.subscribe(subscriber_id)

    try:
        receive_task = asyncio.create_task(_handle_receive(websocket, subscriber_id))
        send_task = asyncio.create_task(_handle_send(websocket, queue))

        done, pending = await asyncio.wait(
            [receive_task, send_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {subscriber_id}")

    finally:
        await event_bus.unsubscribe(subscriber_id)


async def _handle_receive(websocket: WebSocket, subscriber_id: str) -> None:
    """Handle incoming WebSocket messages."""
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from {subscriber_id}: {data}")
                continue

            action = message.get("action") if isinstance(message, dict) else None
            if action == "ping":
                await websocket.send_json({"action": "pong"})
            else:
                logger.debug(f"Unknown action from {subscriber_id}: {action}")

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {subscriber_id}")
    except Exception as e:
        logger.error(f"Receive error for {subscriber_id}: {e}")
        raise


async def _handle_send(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Send events from queue to WebSocket."""
    try:
        while True:
            event = await queue.get()
            await websocket.send_json(event.to_json())

    except WebSocketDisconnect:
        raise
    except Exception as e:
        logger.error(f"Send error: {e}")
        raise
