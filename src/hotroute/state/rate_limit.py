"""Fixed-window rate limiter that survives route module reloads."""

import logging
from dataclasses import dataclass

from hotroute.state.store import StateStore, get_state_store

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_MS = 15 * 60 * 1000


@dataclass
class RateLimitRecord:
    """Request count for one identifier within the current window."""

    count: int
    reset_time: float  # epoch ms


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_time: float
    count: int


class RateLimiter:
    """Counts requests per identifier in fixed windows.

    A window opens on the first request after the previous one has reset
    and lasts ``window_ms``. Rejected requests are not counted and never
    push the reset time back.
    """

    def __init__(
        self,
        name: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: float = DEFAULT_WINDOW_MS,
        store: StateStore | None = None,
    ):
        if max_requests < 1:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")

        self.name = name
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.store = store if store is not None else get_state_store()
        self._prefix = f"rate_limit:{name}:"

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}{identifier}"

    def check(self, identifier: str) -> RateLimitResult:
        """Count a request from identifier and report whether it is allowed."""
        key = self._key(identifier)
        now = self.store.clock()
        record: RateLimitRecord | None = self.store.get(key)

        if record is None or now > record.reset_time:
            record = RateLimitRecord(count=1, reset_time=now + self.window_ms)
            self.store.set(key, record)
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - 1,
                reset_time=record.reset_time,
                count=record.count,
            )

        if record.count >= self.max_requests:
            logger.debug(f"Rate limit {self.name} exceeded for {identifier}")
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_time=record.reset_time,
                count=record.count,
            )

        record.count += 1
        return RateLimitResult(
            allowed=True,
            remaining=self.max_requests - record.count,
            reset_time=record.reset_time,
            count=record.count,
        )

    def reset(self, identifier: str) -> None:
        """Forget the record for one identifier."""
        self.store.delete(self._key(identifier))

    def clear(self) -> None:
        """Forget every identifier's record."""
        self.store.clear(self._prefix)


def create_rate_limit(
    name: str,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_ms: float = DEFAULT_WINDOW_MS,
    store: StateStore | None = None,
) -> RateLimiter:
    """Create a rate limiter whose counters persist across hot-reloads."""
    return RateLimiter(name, max_requests, window_ms, store)
