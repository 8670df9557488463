"""Single persistent values and singletons that survive hot-reloads."""

from collections.abc import Callable
from typing import Any, TypeVar

from hotroute.state.store import StateStore, get_state_store

T = TypeVar("T")


class PersistentValue:
    """A single named value kept in the state store."""

    def __init__(self, key: str, initial_value: Any = None, store: StateStore | None = None):
        self.key = key
        self.store = store if store is not None else get_state_store()
        self._store_key = f"store:{key}"
        self.store.setdefault(self._store_key, initial_value)

    def get(self) -> Any:
        return self.store.get(self._store_key)

    def set(self, value: Any) -> Any:
        self.store.set(self._store_key, value)
        return value

    def update(self, updater: Callable[[Any], Any] | Any) -> Any:
        if callable(updater):
            return self.store.update(self._store_key, updater)
        return self.set(updater)

    def delete(self) -> bool:
        return self.store.delete(self._store_key)

    def has(self) -> bool:
        return self.store.has(self._store_key)


def create_persistent_value(
    key: str,
    initial_value: Any = None,
    store: StateStore | None = None,
) -> PersistentValue:
    """Create a value that keeps its contents across hot-reloads."""
    return PersistentValue(key, initial_value, store)


def create_singleton(key: str, factory: Callable[[], T], store: StateStore | None = None) -> T:
    """Return the object stored under key, calling factory only the first time.

    Useful for clients and connection pools that a reloaded route module
    should reuse instead of recreating.
    """
    store = store if store is not None else get_state_store()
    singleton_key = f"singleton:{key}"
    if not store.has(singleton_key):
        store.set(singleton_key, factory())
    return store.get(singleton_key)
