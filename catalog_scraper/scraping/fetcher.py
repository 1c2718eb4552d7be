"""
Rate-limited, retrying page fetcher.
"""

from __future__ import annotations

import itertools
import logging
import random
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone

import requests

from catalog_scraper.scraping.config.models import ScraperSettings
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.rate_limiter import RequestPacer
from catalog_scraper.scraping.types import (
    FetchErrorDescriptor,
    FetchErrorKind,
    FetchResult,
    IterationState,
    RequestRecord,
)
from catalog_scraper.scraping.urls import is_http_url, with_query_params

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
REQUEST_HISTORY_LIMIT = 1000

_INVALID_URL_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)


class RateLimitedFetcher:
    """
    Fetches pages with pacing, retry/backoff and a uniform result type.

    `fetch` never raises for HTTP or network failures; those come back as a
    failed `FetchResult`. Exceptions outside the `requests` hierarchy propagate.
    """

    def __init__(
        self,
        *,
        settings: ScraperSettings,
        session: requests.Session | None = None,
        pacer: RequestPacer | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._pacer = pacer or RequestPacer(
            rate_limit_per_second=settings.rate_limit_per_second,
            burst=settings.rate_limit_burst,
        )
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._user_agent_lock = threading.Lock()
        self._user_agents = itertools.cycle(settings.user_agents)
        self._history: deque[RequestRecord] = deque(maxlen=REQUEST_HISTORY_LIMIT)
        self._history_lock = threading.Lock()

    @property
    def iteration_state(self) -> IterationState:
        return self._pacer.state

    def fetch(self, url: str, *, params: Mapping[str, object] | None = None) -> FetchResult:
        started = time.monotonic()
        target = with_query_params(url, params)
        if not is_http_url(target):
            error = FetchErrorDescriptor(
                kind=FetchErrorKind.INVALID_URL,
                message=f"Malformed URL: {target!r}",
                retryable=False,
            )
            log_event(logger, logging.WARNING, "fetch_rejected", url=target, error=error.message)
            return self._finish(target, started, attempts=0, error=error)

        last_error: FetchErrorDescriptor | None = None
        attempts = 0
        for attempt in range(1, self._settings.max_retries + 2):
            attempts = attempt
            self._pacer.wait()
            try:
                response = self._session.get(
                    target,
                    headers=self._request_headers(),
                    timeout=self._settings.request_timeout_seconds,
                    allow_redirects=True,
                )
            except requests.RequestException as exc:
                last_error = self._describe_exception(exc)
            else:
                if response.status_code < 400:
                    self._check_rate_limit_headers(target, response)
                    return self._finish(
                        target,
                        started,
                        attempts=attempt,
                        body=response.text,
                        status_code=response.status_code,
                    )
                last_error = self._describe_status(response)

            if not last_error.retryable or attempt > self._settings.max_retries:
                break

            delay = self.retry_delay(attempt)
            log_event(
                logger,
                logging.WARNING,
                "fetch_retry_scheduled",
                url=target,
                attempt=attempt,
                max_retries=self._settings.max_retries,
                delay_seconds=round(delay, 3),
                error=last_error.message,
            )
            self._sleep(delay)

        log_event(
            logger,
            logging.WARNING,
            "fetch_failed",
            url=target,
            attempts=attempts,
            kind=last_error.kind if last_error else None,
            status_code=last_error.status_code if last_error else None,
            error=last_error.message if last_error else None,
        )
        return self._finish(target, started, attempts=attempts, error=last_error)

    def retry_delay(self, attempt: int) -> float:
        """
        Backoff before retry number `attempt` (1-based): base * 2^(attempt-1).
        """

        cap = self._settings.retry_delay_max_seconds
        delay = min(self._settings.retry_delay_base_seconds * (2 ** (attempt - 1)), cap)
        ratio = self._settings.retry_jitter_ratio
        if ratio > 0:
            delay += delay * ratio * self._rng.uniform(-1.0, 1.0)
        return min(max(0.0, delay), cap)

    def reset_rate_limiter(self) -> None:
        self._pacer.reset()
        log_event(logger, logging.INFO, "rate_limiter_reset")

    def set_user_agents(self, agents: Sequence[str]) -> None:
        cleaned = [agent.strip() for agent in agents if agent.strip()]
        if not cleaned:
            raise ValueError("User agent list cannot be empty.")
        with self._user_agent_lock:
            self._user_agents = itertools.cycle(cleaned)

    def request_history(self) -> list[RequestRecord]:
        with self._history_lock:
            return list(self._history)

    def clear_request_history(self) -> None:
        with self._history_lock:
            self._history.clear()

    def _request_headers(self) -> dict[str, str]:
        with self._user_agent_lock:
            user_agent = next(self._user_agents)
        return {**DEFAULT_HEADERS, "User-Agent": user_agent}

    def _finish(
        self,
        url: str,
        started: float,
        *,
        attempts: int,
        body: str | None = None,
        status_code: int | None = None,
        error: FetchErrorDescriptor | None = None,
    ) -> FetchResult:
        duration_ms = int((time.monotonic() - started) * 1000)
        succeeded = error is None and body is not None
        if error is not None and status_code is None:
            status_code = error.status_code
        with self._history_lock:
            self._history.append(
                RequestRecord(
                    url=url,
                    succeeded=succeeded,
                    status_code=status_code,
                    attempts=attempts,
                    duration_ms=duration_ms,
                    timestamp=datetime.now(timezone.utc),
                )
            )
        return FetchResult(
            succeeded=succeeded,
            url=url,
            body=body,
            status_code=status_code,
            error=error,
            attempts=attempts,
            duration_ms=duration_ms,
        )

    @staticmethod
    def _describe_exception(exc: requests.RequestException) -> FetchErrorDescriptor:
        if isinstance(exc, requests.Timeout):
            return FetchErrorDescriptor(
                kind=FetchErrorKind.TIMEOUT,
                message=f"Request timeout: {exc}",
                retryable=True,
            )
        if isinstance(exc, requests.ConnectionError):
            return FetchErrorDescriptor(
                kind=FetchErrorKind.CONNECTION,
                message=f"Connection error: {exc}",
                retryable=True,
            )
        if isinstance(exc, _INVALID_URL_ERRORS):
            return FetchErrorDescriptor(
                kind=FetchErrorKind.INVALID_URL,
                message=str(exc),
                retryable=False,
            )
        return FetchErrorDescriptor(
            kind=FetchErrorKind.REQUEST,
            message=str(exc),
            retryable=False,
        )

    @staticmethod
    def _describe_status(response: requests.Response) -> FetchErrorDescriptor:
        status_code = response.status_code
        retryable = status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600
        reason = getattr(response, "reason", None) or ""
        return FetchErrorDescriptor(
            kind=FetchErrorKind.HTTP_STATUS,
            message=f"HTTP {status_code}: {reason}".rstrip(": "),
            retryable=retryable,
            status_code=status_code,
        )

    @staticmethod
    def _check_rate_limit_headers(url: str, response: requests.Response) -> None:
        headers = response.headers or {}
        remaining = str(headers.get("X-RateLimit-Remaining", "")).strip()
        if remaining.isdigit() and int(remaining) <= 1:
            log_event(
                logger,
                logging.WARNING,
                "rate_limit_nearly_exhausted",
                url=url,
                remaining=int(remaining),
            )

        reset = str(headers.get("X-RateLimit-Reset", "")).strip()
        if reset.isdigit():
            wait_seconds = int(reset) - int(time.time())
            if wait_seconds > 0:
                log_event(
                    logger,
                    logging.WARNING,
                    "rate_limit_reset_pending",
                    url=url,
                    reset_in_seconds=wait_seconds,
                )
