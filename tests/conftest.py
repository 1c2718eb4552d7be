"""
tests/conftest.py

Shared fakes and fixtures for the catalog scraping tests.

No test touches the network: HTTP goes through `ScriptedSession`, storage
through `RecordingStorage` or an in-memory SQLite engine.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from html import escape

import pytest

from catalog_scraper.scraping.config.models import ScraperSettings
from catalog_scraper.scraping.errors import CatalogStorageError
from catalog_scraper.scraping.fetcher import RateLimitedFetcher
from catalog_scraper.scraping.rate_limiter import RequestPacer
from catalog_scraper.scraping.storage.base import CatalogStorage
from catalog_scraper.scraping.types import NormalizedBrand, NormalizedProduct

BASE_URL = "https://catalog.test"


# ---------------------------------------------------------------------------
# HTTP fakes
# ---------------------------------------------------------------------------


@dataclass
class FakeResponse:
    status_code: int = 200
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    reason: str = ""


class ScriptedSession:
    """
    Stand-in for `requests.Session` that replays scripted outcomes.

    `routes` maps an exact URL to one outcome or a list of outcomes; a list is
    consumed in order and its last entry repeats. URLs without a route use the
    `default` sequence the same way. An outcome that is an exception is raised.
    """

    def __init__(
        self,
        default: list[object] | None = None,
        *,
        routes: Mapping[str, object] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._default = list(default or [])
        self._routes = {
            url: list(value) if isinstance(value, list) else [value]
            for url, value in (routes or {}).items()
        }
        self.calls: list[dict[str, object]] = []

    @property
    def urls(self) -> list[str]:
        return [str(call["url"]) for call in self.calls]

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        with self._lock:
            self.calls.append({"url": url, **kwargs})
            queue = self._routes.get(url, self._default)
            if not queue:
                outcome: object = FakeResponse(status_code=404, reason="Not Found")
            elif len(queue) > 1:
                outcome = queue.pop(0)
            else:
                outcome = queue[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome  # type: ignore[return-value]


def no_sleep(_seconds: float) -> None:
    return None


# ---------------------------------------------------------------------------
# Storage fake
# ---------------------------------------------------------------------------


class RecordingStorage(CatalogStorage):
    """
    In-memory `CatalogStorage` that records every call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.brands: dict[str, NormalizedBrand] = {}
        self.products: dict[tuple[str, str], NormalizedProduct] = {}
        self.operations: dict[int, dict[str, object]] = {}
        self.metadata_updates: list[tuple[int, dict[str, int]]] = []
        self.error_increments: list[int] = []
        self.failing_brands: set[str] = set()
        self.fail_metadata_updates = False
        self.fail_error_increments = False
        self.fail_terminal_transitions = False
        self.fail_completion = False

    def upsert_brand(self, record: NormalizedBrand) -> int:
        with self._lock:
            if record.slug in self.failing_brands:
                raise CatalogStorageError(f"write failed for {record.slug}")
            self.brands[record.slug] = record
            return list(self.brands).index(record.slug) + 1

    def create_product(self, record: NormalizedProduct) -> int:
        with self._lock:
            if record.brand_slug not in self.brands:
                raise CatalogStorageError(f"Brand not found for product: {record.brand_slug}")
            self.products[(record.brand_slug, record.slug)] = record
            return len(self.products)

    def create_operation_metadata(self, *, operation_type: str, started_at: datetime) -> int:
        with self._lock:
            operation_id = len(self.operations) + 1
            self.operations[operation_id] = {
                "operation_type": operation_type,
                "status": "in_progress",
                "started_at": started_at,
                "error_count": 0,
            }
            return operation_id

    def update_operation_metadata(self, operation_id: int, patch: Mapping[str, int]) -> None:
        with self._lock:
            if self.fail_metadata_updates:
                raise CatalogStorageError("metadata update failed")
            self.metadata_updates.append((operation_id, dict(patch)))
            self.operations[operation_id].update(patch)

    def increment_error_count(self, operation_id: int) -> None:
        with self._lock:
            if self.fail_error_increments:
                raise CatalogStorageError("error increment failed")
            self.error_increments.append(operation_id)
            self.operations[operation_id]["error_count"] = int(self.operations[operation_id]["error_count"]) + 1

    def complete_operation(self, operation_id: int, brands_processed: int, products_processed: int) -> None:
        if self.fail_terminal_transitions or self.fail_completion:
            raise CatalogStorageError("complete failed")
        self.operations[operation_id].update(
            status="completed",
            brands_processed=brands_processed,
            products_processed=products_processed,
        )

    def fail_operation(self, operation_id: int, reason: str) -> None:
        if self.fail_terminal_transitions:
            raise CatalogStorageError("fail failed")
        self.operations[operation_id].update(status="failed", reason=reason)


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------


def list_item_html(href: str, *names: str) -> str:
    spans = "".join(f"<span>{escape(name)}</span>" for name in names)
    return (
        '<div class="tobacco_list_item">'
        f'<div class="tobacco_list_item_image"><img src="{href}.png"></div>'
        f'<a class="tobacco_list_item_slug" href="{href}">{spans}</a>'
        "</div>"
    )


def list_page_html(
    items: list[str],
    *,
    target: str | None = None,
    offset: int | None = None,
    total: int | None = None,
) -> str:
    attrs = ""
    if target is not None:
        attrs += f' data-target="{target}"'
    if offset is not None:
        attrs += f' data-offset="{offset}" data-count="{len(items)}"'
    if total is not None:
        attrs += f' data-total-count="{total}"'
    return f'<html><body><div class="tobacco_list_items"{attrs}>{"".join(items)}</div></body></html>'


def detail_page_html(
    name: str,
    *,
    description: str | None = None,
    image: str | None = None,
) -> str:
    parts = [f'<div class="object_card_title"><h1>{escape(name)}</h1></div>']
    if description is not None:
        parts.append(f'<div class="object_card_discr"><span>{escape(description)}</span></div>')
    if image is not None:
        parts.append(f'<div class="object_image"><img src="{image}"></div>')
    return f"<html><body>{''.join(parts)}</body></html>"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_settings(**overrides: object) -> ScraperSettings:
    values: dict[str, object] = {
        "base_url": BASE_URL,
        "max_concurrent_brands": 2,
        "max_concurrent_products": 2,
        "checkpoint_interval": 1,
        "max_discovery_iterations": 50,
        "request_timeout_seconds": 5.0,
        "max_retries": 2,
        "retry_delay_base_seconds": 0.0,
        "retry_delay_max_seconds": 0.0,
        "retry_jitter_ratio": 0.0,
        "rate_limit_per_second": 1000.0,
        "rate_limit_burst": 1000,
    }
    values.update(overrides)
    return ScraperSettings(**values)  # type: ignore[arg-type]


def make_fetcher(settings: ScraperSettings, session: ScriptedSession) -> RateLimitedFetcher:
    pacer = RequestPacer(
        rate_limit_per_second=settings.rate_limit_per_second,
        burst=settings.rate_limit_burst,
        sleep=no_sleep,
    )
    return RateLimitedFetcher(
        settings=settings,
        session=session,  # type: ignore[arg-type]
        pacer=pacer,
        sleep=no_sleep,
    )


@pytest.fixture()
def settings() -> ScraperSettings:
    return make_settings()


@pytest.fixture()
def storage() -> RecordingStorage:
    return RecordingStorage()
