"""
Scrape orchestrator: discovery, queued extraction, progress and run metadata.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, replace
from datetime import datetime, timezone

from catalog_scraper.scraping.base import (
    CatalogParser,
    CompletionPredicate,
    PageFetcher,
    RecordNormalizer,
    RecordValidator,
)
from catalog_scraper.scraping.checkpoints import CheckpointSink, LoggingCheckpointSink
from catalog_scraper.scraping.config.models import ScraperSettings
from catalog_scraper.scraping.discovery import DiscoveryLoop
from catalog_scraper.scraping.duplicate_index import DuplicateIndex
from catalog_scraper.scraping.fetcher import RateLimitedFetcher
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.normalization.catalog_normalizer import (
    CatalogNormalizer,
    CatalogValidator,
)
from catalog_scraper.scraping.parsing.html_parsers import CatalogHTMLParser
from catalog_scraper.scraping.pipeline import ExtractionPipeline, PipelineOutcome
from catalog_scraper.scraping.queues import JobQueue, run_in_batches
from catalog_scraper.scraping.storage.base import CatalogStorage
from catalog_scraper.scraping.types import (
    Checkpoint,
    CounterSnapshot,
    DiscoveryResult,
    DiscoveryScope,
    Job,
    JobKind,
    NormalizedBrand,
    NormalizedProduct,
    OperationType,
    ScrapeProgress,
    ScrapeStatistics,
)

logger = logging.getLogger(__name__)


class OrchestratorState:
    """
    Lock-guarded run counters. All counter mutation goes through this object.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters = CounterSnapshot()
        self._brand_discovery_iterations = 0
        self._product_discovery_iterations: dict[str, int] = {}

    def increment(self, field_name: str, amount: int = 1) -> int:
        with self._lock:
            value = getattr(self._counters, field_name) + amount
            self._counters = replace(self._counters, **{field_name: value})
            return value

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return self._counters

    def record_brand_discovery(self, iterations: int) -> None:
        with self._lock:
            self._brand_discovery_iterations += iterations

    def record_product_discovery(self, brand_identifier: str, iterations: int) -> None:
        with self._lock:
            current = self._product_discovery_iterations.get(brand_identifier, 0)
            self._product_discovery_iterations[brand_identifier] = current + iterations

    def product_discovery_iterations(self) -> dict[str, int]:
        with self._lock:
            return dict(self._product_discovery_iterations)

    @property
    def total_iterations(self) -> int:
        with self._lock:
            return self._brand_discovery_iterations + sum(self._product_discovery_iterations.values())

    def reset(self) -> None:
        with self._lock:
            self._counters = CounterSnapshot()
            self._brand_discovery_iterations = 0
            self._product_discovery_iterations.clear()


class ScrapeOrchestrator:
    """
    Coordinates one scrape run over the brand -> product catalog.

    Discovery is fail-fast: errors are counted and re-raised. Extraction is
    fail-soft: failures are counted and the item yields None.
    """

    def __init__(
        self,
        *,
        settings: ScraperSettings,
        storage: CatalogStorage,
        fetcher: PageFetcher | None = None,
        parser: CatalogParser | None = None,
        normalizer: RecordNormalizer | None = None,
        validator: RecordValidator | None = None,
        checkpoint_sink: CheckpointSink | None = None,
        completion_predicate: CompletionPredicate | None = None,
    ) -> None:
        self._settings = settings
        self._layout = settings.layout
        self._storage = storage
        self._fetcher = fetcher or RateLimitedFetcher(settings=settings)
        self._parser = parser or CatalogHTMLParser(
            base_url=self._layout.base_url,
            catalog_root_path=self._layout.catalog_root_path,
        )
        self._normalizer = normalizer or CatalogNormalizer(base_url=self._layout.base_url)
        self._validator = validator or CatalogValidator()
        self._checkpoint_sink = checkpoint_sink or LoggingCheckpointSink()

        self.state = OrchestratorState()
        self.index = DuplicateIndex()
        self.brand_queue = JobQueue(JobKind.BRAND)
        self.product_queue = JobQueue(JobKind.PRODUCT)

        self._discovery = DiscoveryLoop(
            fetcher=self._fetcher,
            parser=self._parser,
            base_url=self._layout.base_url,
            max_iterations=settings.max_discovery_iterations,
            checkpoint_interval=settings.checkpoint_interval,
            completion_predicate=completion_predicate,
            on_checkpoint=self._on_discovery_checkpoint,
        )
        self._pipeline = ExtractionPipeline(
            fetcher=self._fetcher,
            parser=self._parser,
            normalizer=self._normalizer,
            validator=self._validator,
            storage=storage,
            index=self.index,
            layout=self._layout,
        )

        self._operation_id: int | None = None
        self._operation_closed = False
        self._metadata_lock = threading.Lock()

    @property
    def operation_id(self) -> int | None:
        return self._operation_id

    @property
    def fetcher(self) -> PageFetcher:
        return self._fetcher

    # ------------------------------------------------------------------
    # Operation metadata lifecycle
    # ------------------------------------------------------------------

    def initialize_operation(self, operation_type: str = OperationType.FULL_REFRESH) -> int:
        if operation_type not in OperationType.ALL:
            raise ValueError(f"Unsupported operation type: {operation_type}")

        operation_id = self._storage.create_operation_metadata(
            operation_type=operation_type,
            started_at=datetime.now(timezone.utc),
        )
        self._operation_id = operation_id
        self._operation_closed = False
        log_event(
            logger,
            logging.INFO,
            "operation_initialized",
            operation_id=operation_id,
            operation_type=operation_type,
        )
        return operation_id

    def complete_operation(self) -> None:
        if not self._can_close("complete"):
            return

        counters = self.state.snapshot()
        try:
            self._storage.complete_operation(
                self._operation_id,
                counters.brands_processed,
                counters.products_processed,
            )
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "operation_complete_failed",
                operation_id=self._operation_id,
                error=str(exc),
            )
            raise
        self._operation_closed = True
        log_event(
            logger,
            logging.INFO,
            "operation_completed",
            operation_id=self._operation_id,
            **asdict(counters),
        )

    def fail_operation(self, reason: str) -> None:
        if not self._can_close("fail"):
            return

        try:
            self._storage.fail_operation(self._operation_id, reason)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "operation_fail_failed",
                operation_id=self._operation_id,
                error=str(exc),
            )
            raise
        self._operation_closed = True
        log_event(
            logger,
            logging.WARNING,
            "operation_failed",
            operation_id=self._operation_id,
            reason=reason,
        )

    def _can_close(self, transition: str) -> bool:
        if self._operation_id is None:
            log_event(logger, logging.WARNING, "operation_not_initialized", transition=transition)
            return False
        if self._operation_closed:
            log_event(
                logger,
                logging.WARNING,
                "operation_already_closed",
                operation_id=self._operation_id,
                transition=transition,
            )
            return False
        return True

    def _is_operation_active(self) -> bool:
        return self._operation_id is not None and not self._operation_closed

    def _update_operation_counts(self) -> None:
        if not self._is_operation_active():
            return
        try:
            # Stored counts are monotonic; snapshot and write under one lock.
            with self._metadata_lock:
                counters = self.state.snapshot()
                self._storage.update_operation_metadata(
                    self._operation_id,
                    {
                        "brands_processed": counters.brands_processed,
                        "products_processed": counters.products_processed,
                    },
                )
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "operation_metadata_update_failed",
                operation_id=self._operation_id,
                error=str(exc),
            )

    def _record_error(self) -> None:
        self.state.increment("errors_encountered")
        if not self._is_operation_active():
            return
        try:
            self._storage.increment_error_count(self._operation_id)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "operation_error_count_failed",
                operation_id=self._operation_id,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_brands(self) -> DiscoveryResult:
        scope = DiscoveryScope(kind=JobKind.BRAND, start_url=self._layout.brand_list_url())
        try:
            result = self._discovery.run(
                scope,
                on_page=lambda new: self.state.increment("brands_discovered", len(new)),
            )
        except Exception as exc:
            self._record_error()
            log_event(logger, logging.ERROR, "brand_discovery_failed", error=str(exc))
            raise
        self.state.record_brand_discovery(result.iterations)
        return result

    def discover_products(self, brand_identifier: str) -> DiscoveryResult:
        scope = DiscoveryScope(
            kind=JobKind.PRODUCT,
            start_url=self._layout.brand_url(brand_identifier),
            parent_identifier=brand_identifier,
        )
        try:
            result = self._discovery.run(
                scope,
                on_page=lambda new: self.state.increment("products_discovered", len(new)),
            )
        except Exception as exc:
            self._record_error()
            log_event(
                logger,
                logging.ERROR,
                "product_discovery_failed",
                brand=brand_identifier,
                error=str(exc),
            )
            raise
        self.state.record_product_discovery(brand_identifier, result.iterations)
        return result

    def _on_discovery_checkpoint(self, iteration: int, scope: str) -> None:
        self.save_checkpoint(iteration_index=iteration, scope=scope)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_brand_data(self, brand_identifier: str) -> NormalizedBrand | None:
        outcome = self._pipeline.extract_brand(brand_identifier)
        return self._account(outcome, processed_field="brands_processed")

    def extract_product_data(
        self,
        product_identifier: str,
        brand_identifier: str,
    ) -> NormalizedProduct | None:
        outcome = self._pipeline.extract_product(product_identifier, brand_identifier)
        return self._account(outcome, processed_field="products_processed")

    def _account(
        self,
        outcome: PipelineOutcome,
        *,
        processed_field: str,
    ) -> NormalizedBrand | NormalizedProduct | None:
        if outcome.succeeded:
            self.state.increment(processed_field)
            self._update_operation_counts()
            return outcome.record
        if not outcome.is_duplicate:
            self._record_error()
        return None

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    def queue_brand(self, brand_identifier: str) -> Job:
        return self.brand_queue.enqueue(brand_identifier)

    def queue_product(self, product_identifier: str, brand_identifier: str) -> Job:
        return self.product_queue.enqueue(product_identifier, parent_identifier=brand_identifier)

    def process_brand_queue(self) -> int:
        jobs = self.brand_queue.drain()
        results = run_in_batches(
            jobs,
            lambda job: self.extract_brand_data(job.identifier),
            concurrency=self._settings.max_concurrent_brands,
            thread_name_prefix="brand-extract",
        )
        return self._log_drain(JobKind.BRAND, jobs, results)

    def process_product_queue(self) -> int:
        jobs = self.product_queue.drain()
        results = run_in_batches(
            jobs,
            lambda job: self.extract_product_data(job.identifier, job.parent_identifier or ""),
            concurrency=self._settings.max_concurrent_products,
            thread_name_prefix="product-extract",
        )
        return self._log_drain(JobKind.PRODUCT, jobs, results)

    @staticmethod
    def _log_drain(kind: str, jobs: list[Job], results: list[object]) -> int:
        succeeded = sum(1 for result in results if result is not None)
        log_event(
            logger,
            logging.INFO,
            "queue_drained",
            kind=kind,
            jobs=len(jobs),
            succeeded=succeeded,
            failed=len(jobs) - succeeded,
        )
        return succeeded

    # ------------------------------------------------------------------
    # Progress and observability
    # ------------------------------------------------------------------

    def get_statistics(self) -> ScrapeStatistics:
        counters = self.state.snapshot()
        return ScrapeStatistics(
            **asdict(counters),
            queued_brands=self.brand_queue.enqueued_count,
            queued_products=self.product_queue.enqueued_count,
            pending_brands=self.brand_queue.pending_count,
            pending_products=self.product_queue.pending_count,
            tracked_brands=self.index.brand_count(),
            tracked_products=self.index.product_count(),
        )

    def get_progress(self) -> ScrapeProgress:
        counters = self.state.snapshot()
        discovered = counters.brands_discovered + counters.products_discovered
        processed = counters.brands_processed + counters.products_processed
        percentage = round(100 * processed / discovered, 2) if discovered > 0 else 0.0
        return ScrapeProgress(
            iteration=self.state.total_iterations,
            total_discovered=discovered,
            total_processed=processed,
            total_failed=counters.errors_encountered,
            percentage=percentage,
        )

    def save_checkpoint(
        self,
        *,
        iteration_index: int | None = None,
        scope: str | None = None,
    ) -> Checkpoint:
        checkpoint = Checkpoint(
            counters=self.state.snapshot(),
            iteration_index=self.state.total_iterations if iteration_index is None else iteration_index,
            timestamp=datetime.now(timezone.utc),
            scope=scope,
        )
        try:
            self._checkpoint_sink.emit(checkpoint)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "checkpoint_emit_failed",
                iteration_index=checkpoint.iteration_index,
                scope=scope,
                error=str(exc),
            )
        return checkpoint

    def log_progress(self) -> ScrapeProgress:
        progress = self.get_progress()
        log_event(
            logger,
            logging.INFO,
            "scrape_progress",
            operation_id=self._operation_id,
            **asdict(progress),
        )
        return progress

    def reset(self) -> None:
        self.state.reset()
        self.index.reset()
        log_event(logger, logging.INFO, "orchestrator_reset", operation_id=self._operation_id)
