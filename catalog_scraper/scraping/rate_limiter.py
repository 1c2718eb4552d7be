"""
Token-bucket request pacer.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from catalog_scraper.scraping.types import IterationState


class RequestPacer:
    """
    Enforces spacing between outbound requests.

    Up to `burst` requests may go out back to back; after that, requests are
    spaced by `1 / rate_limit_per_second` seconds.
    """

    def __init__(
        self,
        *,
        rate_limit_per_second: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rate = max(0.1, rate_limit_per_second)
        self._capacity = float(max(1, burst))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = self._capacity
        self._last_refill = clock()
        self._state = IterationState()

    @property
    def state(self) -> IterationState:
        with self._lock:
            return self._state

    def wait(self) -> float:
        """
        Block until a request slot is available and return the seconds waited.
        """

        with self._lock:
            self._refill()
            waited = 0.0
            if self._tokens < 1.0:
                waited = (1.0 - self._tokens) / self._rate
                self._sleep(waited)
                self._refill()
                # Sleep may return slightly early with a fake or coarse clock.
                self._tokens = max(self._tokens, 1.0)
            self._tokens -= 1.0
            self._state = IterationState(
                requests_issued=self._state.requests_issued + 1,
                last_delay_ms=int(round(waited * 1000)),
                last_request_at=self._clock(),
            )
            return waited

    def reset(self) -> None:
        with self._lock:
            self._tokens = self._capacity
            self._last_refill = self._clock()
            self._state = IterationState()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now
