"""
catalog_scraper/services/catalog_scraping_service.py

Service orchestration for a full catalog scrape run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from functools import lru_cache

from catalog_scraper.domain.catalog_scraping import CatalogScrapeSummary
from catalog_scraper.scraping.config import get_scraper_settings
from catalog_scraper.scraping.config.models import ScraperSettings
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.orchestrator import ScrapeOrchestrator
from catalog_scraper.scraping.storage import CatalogStorage, SQLAlchemyCatalogStorage
from catalog_scraper.scraping.types import OperationStatus, OperationType

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[ScraperSettings, CatalogStorage], ScrapeOrchestrator]


def _default_orchestrator(settings: ScraperSettings, storage: CatalogStorage) -> ScrapeOrchestrator:
    return ScrapeOrchestrator(settings=settings, storage=storage)


def _default_storage() -> CatalogStorage:
    from db.session import get_session_factory

    return SQLAlchemyCatalogStorage(session_factory=get_session_factory())


class CatalogScrapingService:
    """
    Runs brand discovery, brand extraction, then product discovery and extraction.
    """

    def __init__(
        self,
        *,
        settings: ScraperSettings | None = None,
        storage: CatalogStorage | None = None,
        orchestrator_factory: OrchestratorFactory = _default_orchestrator,
    ) -> None:
        self._settings = settings or get_scraper_settings()
        self._storage = storage
        self._orchestrator_factory = orchestrator_factory

    def run(
        self,
        *,
        mode: str = OperationType.FULL_REFRESH,
        brands: Sequence[str] | None = None,
        brand_limit: int | None = None,
    ) -> CatalogScrapeSummary:
        storage = self._storage or _default_storage()
        orchestrator = self._orchestrator_factory(self._settings, storage)
        orchestrator.initialize_operation(mode)

        try:
            brand_identifiers = self._select_brands(orchestrator, brands, brand_limit)

            for brand in brand_identifiers:
                orchestrator.queue_brand(brand)
            orchestrator.process_brand_queue()
            orchestrator.log_progress()

            for brand in brand_identifiers:
                result = orchestrator.discover_products(brand)
                for product in result.identifiers:
                    orchestrator.queue_product(product, brand)
            orchestrator.process_product_queue()

            orchestrator.save_checkpoint(scope="run")
            progress = orchestrator.log_progress()
            orchestrator.complete_operation()
        except Exception as exc:
            orchestrator.fail_operation(str(exc))
            log_event(logger, logging.ERROR, "catalog_scrape_failed", mode=mode, error=str(exc))
            raise

        stats = orchestrator.get_statistics()
        summary = CatalogScrapeSummary(
            operation_id=orchestrator.operation_id,
            operation_type=mode,
            status=OperationStatus.COMPLETED,
            brands_discovered=stats.brands_discovered,
            brands_processed=stats.brands_processed,
            products_discovered=stats.products_discovered,
            products_processed=stats.products_processed,
            errors_encountered=stats.errors_encountered,
            percentage=progress.percentage,
            brands=brand_identifiers,
        )
        log_event(
            logger,
            logging.INFO,
            "catalog_scrape_completed",
            operation_id=summary.operation_id,
            mode=mode,
            brands=len(brand_identifiers),
            products_processed=summary.products_processed,
            errors=summary.errors_encountered,
        )
        return summary

    @staticmethod
    def _select_brands(
        orchestrator: ScrapeOrchestrator,
        brands: Sequence[str] | None,
        brand_limit: int | None,
    ) -> list[str]:
        if brands:
            selected: list[str] = []
            seen: set[str] = set()
            for brand in brands:
                slug = brand.strip()
                if slug and slug.casefold() not in seen:
                    seen.add(slug.casefold())
                    selected.append(slug)
            # Explicit brands skip discovery, so they count as discovered here.
            orchestrator.state.increment("brands_discovered", len(selected))
        else:
            selected = orchestrator.discover_brands().identifiers

        if brand_limit is not None and brand_limit > 0:
            selected = selected[:brand_limit]
        return selected


@lru_cache(maxsize=1)
def get_catalog_scraping_service() -> CatalogScrapingService:
    """
    Build and cache the catalog scraping service.
    """

    return CatalogScrapingService()
