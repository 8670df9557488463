"""Process-wide key/value store that outlives route module reloads.

Route modules are re-executed on every hot-reload, so anything they keep in
module globals is lost. Values kept here survive because this module is not
part of any route's reload set; handlers and caches are thin views that
look their data up by a stable key on every call.

Expiry is lazy: an entry whose TTL has elapsed is removed the next time it
is read or counted, never by a background sweep.
"""

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


@dataclass
class StoreEntry:
    """A single stored value with optional time-to-live."""

    key: str
    value: Any
    created_at: float
    ttl_ms: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.ttl_ms is None:
            return False
        return now - self.created_at > self.ttl_ms


class StateStore:
    """Key/value store with lazy per-entry expiry.

    Keys are plain strings; callers scope their keys with a prefix
    (``cache:<name>:``, ``state:<key>``, ...) so independent users never
    collide. The store never validates value shapes.
    """

    def __init__(
        self,
        default_ttl_ms: float | None = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.default_ttl_ms = default_ttl_ms
        self.clock = clock
        self._entries: dict[str, StoreEntry] = {}

    def _live_entry(self, key: str) -> StoreEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self._entries[key]
            logger.debug(f"Store entry expired: {key}")
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for key, or default if absent or expired."""
        entry = self._live_entry(key)
        if entry is None:
            return default
        return entry.value

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl_ms: float | None = None) -> None:
        """Insert or replace a value.

        Args:
            key: Non-empty string key.
            value: Any value; stored by reference.
            ttl_ms: Lifetime for this entry only. When omitted the store's
                default TTL applies (``None`` means no expiry).
        """
        if not isinstance(key, str) or not key:
            logger.warning(f"Ignoring store write with invalid key: {key!r}")
            return

        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        now = self.clock()
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = StoreEntry(key=key, value=value, created_at=now, ttl_ms=ttl)
        else:
            entry.value = value
            entry.created_at = now
            entry.ttl_ms = ttl

    def update(self, key: str, updater: Callable[[Any], Any], default: Any = None) -> Any:
        """Replace a value with ``updater(current)`` keeping its TTL window.

        A missing or expired key is treated as holding ``default`` and is
        created with the store's default TTL.
        """
        entry = self._live_entry(key)
        if entry is None:
            value = updater(default)
            self.set(key, value)
            return value
        entry.value = updater(entry.value)
        return entry.value

    def setdefault(self, key: str, value: Any, ttl_ms: float | None = None) -> Any:
        """Return the live value for key, storing ``value`` first if absent."""
        entry = self._live_entry(key)
        if entry is not None:
            return entry.value
        self.set(key, value, ttl_ms)
        return value

    def delete(self, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""
        return self._entries.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        """Live keys starting with prefix (expired ones are dropped)."""
        return [entry.key for entry in self._iter_live(prefix)]

    def items(self, prefix: str = "") -> list[tuple[str, Any]]:
        return [(entry.key, entry.value) for entry in self._iter_live(prefix)]

    def size(self, prefix: str = "") -> int:
        """Number of live entries at call time."""
        return sum(1 for _ in self._iter_live(prefix))

    def clear(self, prefix: str = "") -> int:
        """Remove every entry whose key starts with prefix.

        Returns:
            Number of entries removed.
        """
        if not prefix:
            count = len(self._entries)
            self._entries.clear()
            return count

        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def reset(self) -> None:
        """Drop all entries. Intended for process teardown and test isolation."""
        count = self.clear()
        logger.debug(f"State store reset ({count} entries dropped)")

    def _iter_live(self, prefix: str) -> Iterator[StoreEntry]:
        now = self.clock()
        expired: list[str] = []
        for key, entry in list(self._entries.items()):
            if not key.startswith(prefix):
                continue
            if entry.is_expired(now):
                expired.append(key)
                continue
            yield entry
        for key in expired:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)


# Reusing the existing instance keeps stored values when this module itself
# is passed to importlib.reload().
if "state_store" not in globals():
    state_store = StateStore()


def get_state_store() -> StateStore:
    """Return the process-wide state store."""
    return state_store


def reset_state_store() -> None:
    """Clear the process-wide state store."""
    state_store.reset()
