"""TTL cache that survives route module reloads."""

import logging
from typing import Any

from hotroute.state.store import StateStore, get_state_store

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MS = 5 * 60 * 1000


class TTLCache:
    """Named cache view over the state store.

    Items live under ``cache:<name>:<key>`` so caches with different names
    never share keys. Expired items are removed when next read or counted.
    """

    def __init__(
        self,
        name: str,
        default_ttl_ms: float = DEFAULT_CACHE_TTL_MS,
        store: StateStore | None = None,
    ):
        self.name = name
        self.default_ttl_ms = default_ttl_ms
        self.store = store if store is not None else get_state_store()
        self._prefix = f"cache:{name}:"

    def _key(self, item_key: str) -> str:
        return f"{self._prefix}{item_key}"

    def get(self, item_key: str) -> Any:
        """Return the cached value, or None if missing or expired."""
        return self.store.get(self._key(item_key))

    def set(self, item_key: str, value: Any, ttl_ms: float | None = None) -> Any:
        """Cache a value; ``ttl_ms`` overrides the cache default for this item."""
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        self.store.set(self._key(item_key), value, ttl_ms=ttl)
        return value

    def delete(self, item_key: str) -> bool:
        return self.store.delete(self._key(item_key))

    def clear(self) -> None:
        removed = self.store.clear(self._prefix)
        logger.debug(f"Cache {self.name} cleared ({removed} items)")

    def size(self) -> int:
        return self.store.size(self._prefix)

    def keys(self) -> list[str]:
        return [key[len(self._prefix):] for key in self.store.keys(self._prefix)]

    def __contains__(self, item_key: str) -> bool:
        return self.store.has(self._key(item_key))


def create_cache(
    name: str,
    default_ttl_ms: float = DEFAULT_CACHE_TTL_MS,
    store: StateStore | None = None,
) -> TTLCache:
    """Create a cache whose contents persist across hot-reloads.

    Calling this again with the same name (for example after the route
    module was reloaded) returns a view over the same items.
    """
    return TTLCache(name, default_ttl_ms, store)
