"""Stateful route handlers whose state survives hot-reloads.

A route module that needs runtime state creates a handler at import time::

    handler = create_stateful_handler(
        {"count": 0},
        {"GET": get_count, "POST": increment},
        key="/api/counter",
    )

When the module is reloaded the call runs again with the same key and the
new handler picks up the stored state instead of ``{"count": 0}``. Only the
state lives in the store; subscribers belong to the handler instance and
are dropped with it.
"""

import copy
import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from hotroute.state.store import StateStore, get_state_store

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 10

StateChangeCallback = Callable[[dict[str, Any], dict[str, Any]], Any]


class HttpMethod(str, Enum):
    """HTTP methods a route handler can serve."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class StatefulHandler:
    """Disposable view over the state stored under one stable key."""

    def __init__(
        self,
        key: str,
        initial_state: Mapping[str, Any],
        handlers: Mapping[HttpMethod | str, Callable[..., Any]] | None = None,
        store: StateStore | None = None,
    ):
        if not key:
            raise ValueError("Stateful handlers need a stable, non-empty key")
        if not isinstance(initial_state, Mapping):
            raise TypeError(f"initial_state must be a mapping, got {type(initial_state).__name__}")

        self.key = key
        self.store = store if store is not None else get_state_store()
        self._state_key = f"state:{key}"
        self._history_key = f"state_history:{key}"
        self._initial_state: dict[str, Any] = copy.deepcopy(dict(initial_state))
        self._subscribers: list[StateChangeCallback] = []
        self._handlers: dict[HttpMethod, Callable[..., Any]] = {
            HttpMethod(method.upper() if isinstance(method, str) else method): fn
            for method, fn in (handlers or {}).items()
        }

        if self.store.has(self._state_key):
            logger.debug(f"Restored preserved state for {key}")
        else:
            self.store.set(self._state_key, copy.deepcopy(self._initial_state))

    def _current(self) -> dict[str, Any]:
        state = self.store.get(self._state_key)
        if state is None:
            # The store was reset underneath us; start over from the initial state.
            state = copy.deepcopy(self._initial_state)
            self.store.set(self._state_key, state)
        return state

    @property
    def methods(self) -> frozenset[HttpMethod]:
        return frozenset(self._handlers)

    def handler_for(self, method: HttpMethod | str) -> Callable[..., Any] | None:
        """Return the function serving method, or None if not supported."""
        try:
            method = HttpMethod(method.upper() if isinstance(method, str) else method)
        except ValueError:
            return None
        return self._handlers.get(method)

    def get_state(self) -> dict[str, Any]:
        """Return a shallow copy of the current state."""
        return dict(self._current())

    def set_state(self, new_state: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge new_state into the current state.

        Anything other than a mapping is ignored, so a stray ``None`` written
        during a reload cannot wipe the stored state.
        """
        if not isinstance(new_state, Mapping):
            logger.warning(f"Ignoring non-mapping state for {self.key}: {type(new_state).__name__}")
            return self.get_state()

        previous = self.get_state()
        return self._commit({**previous, **new_state}, previous)

    def update_state(
        self,
        updater: Callable[[dict[str, Any]], Mapping[str, Any]] | Mapping[str, Any],
    ) -> dict[str, Any]:
        """Merge ``updater(previous_state)`` into the state and return the result.

        A mapping may be passed instead of a function.
        """
        previous = self.get_state()
        partial = updater(dict(previous)) if callable(updater) else updater
        if not isinstance(partial, Mapping):
            logger.warning(f"Ignoring non-mapping state update for {self.key}: {type(partial).__name__}")
            return previous
        return self._commit({**previous, **partial}, previous)

    def reset_state(self) -> dict[str, Any]:
        """Restore the state this handler was constructed with."""
        previous = self.get_state()
        return self._commit(copy.deepcopy(self._initial_state), previous)

    def on_state_change(self, callback: StateChangeCallback) -> Callable[[], None]:
        """Register a callback invoked with (new_state, previous_state).

        Returns:
            A function that removes the callback again.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def get_state_history(self) -> list[dict[str, Any]]:
        """Previous states, oldest first (at most the last ten)."""
        return [dict(item) for item in self.store.get(self._history_key, [])]

    def _commit(self, new_state: dict[str, Any], previous: dict[str, Any]) -> dict[str, Any]:
        self.store.set(self._state_key, new_state)

        history = self.store.setdefault(self._history_key, [])
        history.append(previous)
        del history[:-MAX_HISTORY_SIZE]

        for callback in list(self._subscribers):
            try:
                callback(dict(new_state), dict(previous))
            except Exception as e:
                logger.error(f"State change callback error for {self.key}: {e}")

        return dict(new_state)


def create_stateful_handler(
    initial_state: Mapping[str, Any],
    handlers: Mapping[HttpMethod | str, Callable[..., Any]] | None = None,
    *,
    key: str,
    store: StateStore | None = None,
) -> StatefulHandler:
    """Create a route handler whose state persists across hot-reloads.

    Args:
        initial_state: State used the first time this key is seen, and by
            ``reset_state``.
        handlers: HTTP method -> function map served by the router.
        key: Stable identifier assigned by the router (usually the route path).
        store: Store to use instead of the process-wide one.
    """
    return StatefulHandler(key, initial_state, handlers, store)
