"""Fan-out of hot-reload notifications to WebSocket clients and local listeners."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from hotroute.events.types import Event

logger = logging.getLogger(__name__)

Listener = Callable[[Event], Awaitable[None] | None]

DEFAULT_QUEUE_SIZE = 100


class EventBus:
    """Delivers each notification to every connected client queue and listener.

    Client queues are bounded. When a client falls behind, its oldest
    notification is dropped so a slow browser tab never holds up a reload
    batch. Listeners run in registration order; one that raises is logged
    and the rest still run.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self._queues: dict[str, asyncio.Queue[Event]] = {}
        self._listeners: list[Listener] = []
        self._lock = asyncio.Lock()

    async def subscribe(self, subscriber_id: str) -> asyncio.Queue[Event]:
        """Register a client and return the queue its notifications arrive on."""
        async with self._lock:
            queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.queue_size)
            self._queues[subscriber_id] = queue
            logger.debug(f"Subscriber {subscriber_id} connected")
            return queue

    async def unsubscribe(self, subscriber_id: str) -> None:
        async with self._lock:
            if self._queues.pop(subscriber_id, None) is not None:
                logger.debug(f"Subscriber {subscriber_id} disconnected")

    def add_callback(self, listener: Listener) -> None:
        """Call listener (sync or async) for every published notification."""
        self._listeners.append(listener)

    async def publish(self, event: Event) -> None:
        logger.debug(f"Publishing {event.type.value}: {event.data}")

        async with self._lock:
            for subscriber_id, queue in self._queues.items():
                if queue.full():
                    dropped = queue.get_nowait()
                    logger.warning(
                        f"Subscriber {subscriber_id} is behind, dropped {dropped.type.value}"
                    )
                queue.put_nowait(event)

        for listener in list(self._listeners):
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Listener failed on {event.type.value}: {e}")

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)


event_bus = EventBus()
