"""Reload-safe state for route modules.

Everything here is a view over the process-wide ``StateStore``; creating a
view again after a route module reload finds the same data.
"""

from hotroute.state.cache import TTLCache, create_cache
from hotroute.state.handler import HttpMethod, StatefulHandler, create_stateful_handler
from hotroute.state.persistent import PersistentValue, create_persistent_value, create_singleton
from hotroute.state.rate_limit import RateLimiter, RateLimitRecord, RateLimitResult, create_rate_limit
from hotroute.state.store import (
    StateStore,
    StoreEntry,
    get_state_store,
    reset_state_store,
    state_store,
)

__all__ = [
    "HttpMethod",
    "PersistentValue",
    "RateLimitRecord",
    "RateLimitResult",
    "RateLimiter",
    "StateStore",
    "StatefulHandler",
    "StoreEntry",
    "TTLCache",
    "create_cache",
    "create_persistent_value",
    "create_rate_limit",
    "create_singleton",
    "create_stateful_handler",
    "get_state_store",
    "reset_state_store",
    "state_store",
]
