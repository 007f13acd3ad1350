"""In-memory minimum-interval rate limiter.

Each key may issue one request per ``min_interval_ms``. The check and the
record happen in one synchronous call with no suspension point, so under
asyncio two coroutines can never both observe a stale "allowed" state for
the same key. A lock guards the map for callers on other threads.

State lives in this process only. Running several instances multiplies the
effective rate; sharing a limit across instances needs an external store.
"""

import threading
import time
from typing import Callable

from plottr.core.geocoding.constants import (
    DEFAULT_MIN_INTERVAL_MS,
    GLOBAL_RATE_KEY,
    RATE_LIMIT_PRUNE_AGE_MS,
    RATE_LIMIT_PRUNE_THRESHOLD,
)
from plottr.core.geocoding.errors import RateLimitError
from plottr.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Per-key minimum inter-request interval."""

    def __init__(
        self,
        min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS,
        prune_threshold: int = RATE_LIMIT_PRUNE_THRESHOLD,
        prune_age_ms: int = RATE_LIMIT_PRUNE_AGE_MS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ) -> None:
        """Initialize the limiter.

        Args:
            min_interval_ms: Minimum gap between two requests for one key
            prune_threshold: Key count above which stale keys are pruned
            prune_age_ms: Keys untouched for longer than this are pruned
            clock: Monotonic clock returning seconds
            name: Label used in log events
        """
        self.min_interval_ms = min_interval_ms
        self.prune_threshold = prune_threshold
        self.prune_age_ms = prune_age_ms
        self.name = name
        self._clock = clock
        self._last_request: dict[str, float] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def allow(self, key: str = GLOBAL_RATE_KEY) -> bool:
        """Record a request for ``key`` if it is allowed.

        Returns:
            True if the request may proceed, False if it came too soon
        """
        with self._lock:
            now = self._now_ms()
            last = self._last_request.get(key)
            if last is not None and now - last < self.min_interval_ms:
                return False

            self._last_request[key] = now
            if len(self._last_request) > self.prune_threshold:
                self._prune(now)
            return True

    def check(self, key: str = GLOBAL_RATE_KEY) -> None:
        """Like :meth:`allow` but raise when the request is rejected.

        Raises:
            RateLimitError: If ``key`` made a request within the interval
        """
        if self.allow(key):
            return

        wait_ms = self.retry_after_ms(key)
        logger.warning(
            "rate_limit_rejected",
            limiter=self.name,
            key=key,
            retry_after_ms=round(wait_ms),
        )
        raise RateLimitError(
            f"Rate limit exceeded. Please wait {self.min_interval_ms / 1000:g} "
            "second(s) between requests.",
            retry_after=wait_ms / 1000.0,
            provider=self.name,
        )

    def retry_after_ms(self, key: str = GLOBAL_RATE_KEY) -> float:
        """Milliseconds until ``key`` may issue its next request."""
        with self._lock:
            last = self._last_request.get(key)
            if last is None:
                return 0.0
            return max(0.0, self.min_interval_ms - (self._now_ms() - last))

    def _prune(self, now: float) -> None:
        cutoff = now - self.prune_age_ms
        stale = [k for k, ts in self._last_request.items() if ts < cutoff]
        for k in stale:
            del self._last_request[k]
        if stale:
            logger.debug("rate_limit_pruned", limiter=self.name, removed=len(stale))

    def reset(self) -> None:
        """Forget all recorded requests."""
        with self._lock:
            self._last_request.clear()

    def __len__(self) -> int:
        return len(self._last_request)
