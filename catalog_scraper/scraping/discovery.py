"""
Pagination discovery loop for brand and product list pages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from catalog_scraper.scraping.base import CatalogParser, CompletionPredicate, PageFetcher
from catalog_scraper.scraping.duplicate_index import DuplicateIndex
from catalog_scraper.scraping.errors import DiscoveryError
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.normalization.catalog_normalizer import generate_slug
from catalog_scraper.scraping.types import (
    DiscoveryResult,
    DiscoveryScope,
    JobKind,
    ListRecord,
    PageInfo,
)
from catalog_scraper.scraping.urls import extract_slug, resolve_url

logger = logging.getLogger(__name__)

CheckpointCallback = Callable[[int, str], None]
PageCallback = Callable[[list[str]], None]


class DiscoveryLoop:
    """
    Walks paginated list pages for one scope and collects unique identifiers.

    The first page must be fetched successfully or `DiscoveryError` is raised.
    A failed later page ends the walk with what was accumulated so far.
    Exceptions raised by the fetcher itself propagate unchanged.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        parser: CatalogParser,
        base_url: str,
        max_iterations: int = 1000,
        checkpoint_interval: int = 1,
        completion_predicate: CompletionPredicate | None = None,
        on_checkpoint: CheckpointCallback | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._parser = parser
        self._base_url = base_url.rstrip("/")
        self._max_iterations = max(1, max_iterations)
        self._checkpoint_interval = max(1, checkpoint_interval)
        self._is_complete = completion_predicate or parser.is_discovery_complete
        self._on_checkpoint = on_checkpoint

    def run(self, scope: DiscoveryScope, *, on_page: PageCallback | None = None) -> DiscoveryResult:
        index = DuplicateIndex()
        identifiers: list[str] = []
        url = scope.start_url
        params: dict[str, object] | None = None
        iteration = 0
        has_more = False

        while True:
            if iteration >= self._max_iterations:
                log_event(
                    logger,
                    logging.WARNING,
                    "discovery_iteration_cap_reached",
                    scope=scope.label,
                    max_iterations=self._max_iterations,
                    discovered=len(identifiers),
                )
                has_more = True
                break

            iteration += 1
            result = self._fetcher.fetch(url, params=params)
            if not result.succeeded or result.body is None:
                message = result.error.message if result.error else "empty response body"
                if iteration == 1:
                    raise DiscoveryError(
                        f"Failed to fetch first list page for {scope.label}: {message}",
                        url=result.url,
                        status_code=result.status_code,
                    )
                log_event(
                    logger,
                    logging.WARNING,
                    "discovery_page_failed",
                    scope=scope.label,
                    iteration=iteration,
                    url=result.url,
                    error=message,
                )
                has_more = True
                break

            page = self._parser.parse_list_page(result.body, scope)
            if not page.records:
                has_more = False
                break

            new_identifiers = self._register(index, scope, page.records)
            identifiers.extend(new_identifiers)
            if on_page is not None:
                on_page(new_identifiers)

            log_event(
                logger,
                logging.DEBUG,
                "discovery_page_parsed",
                scope=scope.label,
                iteration=iteration,
                records=len(page.records),
                new=len(new_identifiers),
                offset=page.page_info.offset,
                total_count=page.page_info.total_count,
            )

            info = page.page_info
            if not info.has_more or self._is_complete(info, len(identifiers)):
                has_more = False
                break

            if self._on_checkpoint is not None and iteration % self._checkpoint_interval == 0:
                self._on_checkpoint(iteration, scope.label)

            url, params = self._next_page(scope, info)

        log_event(
            logger,
            logging.INFO,
            "discovery_completed",
            scope=scope.label,
            iterations=iteration,
            discovered=len(identifiers),
            has_more=has_more,
        )
        return DiscoveryResult(
            identifiers=identifiers,
            total_discovered=len(identifiers),
            iterations=iteration,
            has_more=has_more,
        )

    def _register(
        self,
        index: DuplicateIndex,
        scope: DiscoveryScope,
        records: list[ListRecord],
    ) -> list[str]:
        new_identifiers: list[str] = []
        for record in records:
            identifier = extract_slug(record.source_url) or generate_slug(record.name)
            if not identifier:
                continue
            if scope.kind == JobKind.PRODUCT and scope.parent_identifier:
                duplicate = index.add_product(scope.parent_identifier, identifier)
            else:
                duplicate = index.add_brand(identifier)
            if not duplicate:
                new_identifiers.append(identifier)
        return new_identifiers

    def _next_page(self, scope: DiscoveryScope, info: PageInfo) -> tuple[str, dict[str, object]]:
        url = resolve_url(info.target_scope, self._base_url) or scope.start_url
        return url, {"offset": info.offset + info.count_on_page}
