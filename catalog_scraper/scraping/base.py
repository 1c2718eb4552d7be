"""
Collaborator interfaces consumed by the scrape orchestration engine.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Protocol

from catalog_scraper.scraping.types import (
    BrandDetail,
    DiscoveryScope,
    FetchResult,
    NormalizedBrand,
    NormalizedProduct,
    PageInfo,
    ParsedListPage,
    ProductDetail,
    ValidationResult,
)

CompletionPredicate = Callable[[PageInfo, int], bool]


class PageFetcher(Protocol):
    def fetch(self, url: str, *, params: Mapping[str, object] | None = None) -> FetchResult:
        ...


class CatalogParser(Protocol):
    def parse_list_page(self, body: str, scope: DiscoveryScope) -> ParsedListPage:
        ...

    def parse_detail_page(
        self,
        body: str,
        identifier: str,
        parent_identifier: str | None = None,
    ) -> BrandDetail | ProductDetail:
        ...

    def is_discovery_complete(self, page_info: PageInfo, accumulated_count: int) -> bool:
        ...


class RecordNormalizer(Protocol):
    def normalize(self, detail: BrandDetail | ProductDetail) -> NormalizedBrand | NormalizedProduct:
        ...


class RecordValidator(Protocol):
    def validate(self, record: NormalizedBrand | NormalizedProduct) -> ValidationResult:
        ...
