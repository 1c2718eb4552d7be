"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


class JobKind:
    BRAND = "brand"
    PRODUCT = "product"


class OperationType:
    FULL_REFRESH = "full_refresh"
    INCREMENTAL_UPDATE = "incremental_update"

    ALL = (FULL_REFRESH, INCREMENTAL_UPDATE)


class OperationStatus:
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class FetchErrorKind:
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    INVALID_URL = "invalid_url"
    REQUEST = "request"


@dataclass(frozen=True)
class FetchErrorDescriptor:
    """
    Structured reason a fetch did not produce a page body.
    """

    kind: str
    message: str
    retryable: bool
    status_code: int | None = None


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of one `fetch` call, including all of its retries.
    """

    succeeded: bool
    url: str
    body: str | None = None
    status_code: int | None = None
    error: FetchErrorDescriptor | None = None
    attempts: int = 0
    duration_ms: int = 0


@dataclass(frozen=True)
class RequestRecord:
    url: str
    succeeded: bool
    status_code: int | None
    attempts: int
    duration_ms: int
    timestamp: datetime


@dataclass(frozen=True)
class IterationState:
    """
    Request pacing counters for one fetcher.
    """

    requests_issued: int = 0
    last_delay_ms: int = 0
    last_request_at: float | None = None


@dataclass(frozen=True)
class PageInfo:
    """
    Pagination metadata read from one list page.
    """

    target_scope: str | None
    offset: int
    count_on_page: int
    total_count: int
    has_more: bool


@dataclass(frozen=True)
class ListRecord:
    name: str
    source_url: str


@dataclass(frozen=True)
class ParsedListPage:
    records: list[ListRecord]
    page_info: PageInfo


@dataclass(frozen=True)
class DiscoveryScope:
    """
    What a discovery walk enumerates: all brands, or the products of one brand.
    """

    kind: str
    start_url: str
    parent_identifier: str | None = None

    @property
    def label(self) -> str:
        if self.parent_identifier:
            return f"{self.kind}:{self.parent_identifier}"
        return self.kind


@dataclass(frozen=True)
class DiscoveryResult:
    identifiers: list[str]
    total_discovered: int
    iterations: int
    has_more: bool


@dataclass(frozen=True)
class BrandDetail:
    name: str
    source_url: str
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class ProductDetail:
    name: str
    source_url: str
    brand_slug: str
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class NormalizedBrand:
    slug: str
    name: str
    source_url: str
    scraped_at: datetime
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class NormalizedProduct:
    slug: str
    name: str
    source_url: str
    brand_slug: str
    scraped_at: datetime
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Job:
    """
    One queued extraction request. Immutable once enqueued.
    """

    kind: str
    identifier: str
    job_id: str
    parent_identifier: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class CounterSnapshot:
    brands_discovered: int = 0
    brands_processed: int = 0
    products_discovered: int = 0
    products_processed: int = 0
    errors_encountered: int = 0


@dataclass(frozen=True)
class Checkpoint:
    """
    Observability snapshot of progress counters. Not a resume point.
    """

    counters: CounterSnapshot
    iteration_index: int
    timestamp: datetime
    scope: str | None = None


@dataclass(frozen=True)
class ScrapeProgress:
    iteration: int
    total_discovered: int
    total_processed: int
    total_failed: int
    percentage: float


@dataclass(frozen=True)
class ScrapeStatistics:
    brands_discovered: int
    brands_processed: int
    products_discovered: int
    products_processed: int
    errors_encountered: int
    queued_brands: int
    queued_products: int
    pending_brands: int
    pending_products: int
    tracked_brands: int
    tracked_products: int
