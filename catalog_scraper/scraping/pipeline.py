"""
Per-item extraction pipeline: fetch, parse, normalize, validate, dedup, persist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from catalog_scraper.scraping.base import CatalogParser, PageFetcher, RecordNormalizer, RecordValidator
from catalog_scraper.scraping.config.models import SiteLayout
from catalog_scraper.scraping.duplicate_index import DuplicateIndex
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.normalization.catalog_normalizer import log_invalid_record
from catalog_scraper.scraping.storage.base import CatalogStorage
from catalog_scraper.scraping.types import JobKind, NormalizedBrand, NormalizedProduct

logger = logging.getLogger(__name__)


class PipelineStage:
    FETCH = "fetch"
    PARSE = "parse"
    NORMALIZE = "normalize"
    VALIDATE = "validate"
    DUPLICATE = "duplicate"
    PERSIST = "persist"


@dataclass(frozen=True)
class PipelineFailure:
    stage: str
    message: str


@dataclass(frozen=True)
class PipelineOutcome:
    record: NormalizedBrand | NormalizedProduct | None = None
    failure: PipelineFailure | None = None

    @property
    def succeeded(self) -> bool:
        return self.record is not None

    @property
    def is_duplicate(self) -> bool:
        return self.failure is not None and self.failure.stage == PipelineStage.DUPLICATE


class ExtractionPipeline:
    """
    Turns one brand or product identifier into a persisted record.

    `extract_brand` and `extract_product` never raise; every failure is
    returned as a `PipelineOutcome` carrying the failing stage.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        parser: CatalogParser,
        normalizer: RecordNormalizer,
        validator: RecordValidator,
        storage: CatalogStorage,
        index: DuplicateIndex,
        layout: SiteLayout,
    ) -> None:
        self._fetcher = fetcher
        self._parser = parser
        self._normalizer = normalizer
        self._validator = validator
        self._storage = storage
        self._index = index
        self._layout = layout

    def extract_brand(self, identifier: str) -> PipelineOutcome:
        return self._run(
            kind=JobKind.BRAND,
            identifier=identifier,
            parent_identifier=None,
            url=self._layout.brand_url(identifier),
        )

    def extract_product(self, identifier: str, brand_identifier: str) -> PipelineOutcome:
        return self._run(
            kind=JobKind.PRODUCT,
            identifier=identifier,
            parent_identifier=brand_identifier,
            url=self._layout.product_url(brand_identifier, identifier),
        )

    def _run(
        self,
        *,
        kind: str,
        identifier: str,
        parent_identifier: str | None,
        url: str,
    ) -> PipelineOutcome:
        stage = PipelineStage.FETCH
        try:
            result = self._fetcher.fetch(url)
            if not result.succeeded or result.body is None:
                message = result.error.message if result.error else "empty response body"
                return self._fail(kind, identifier, stage, message, url=url)

            stage = PipelineStage.PARSE
            detail = self._parser.parse_detail_page(result.body, identifier, parent_identifier)

            stage = PipelineStage.NORMALIZE
            record = self._normalizer.normalize(detail)

            stage = PipelineStage.VALIDATE
            validation = self._validator.validate(record)
            if not validation.is_valid:
                log_invalid_record(record, validation.errors, kind=kind)
                return self._fail(kind, identifier, stage, "; ".join(validation.errors), url=url)

            stage = PipelineStage.DUPLICATE
            if self._register(kind, record):
                log_event(
                    logger,
                    logging.DEBUG,
                    "extraction_duplicate_skipped",
                    kind=kind,
                    identifier=identifier,
                    parent_identifier=parent_identifier,
                )
                return PipelineOutcome(
                    failure=PipelineFailure(stage=stage, message=f"duplicate {kind} {record.slug}")
                )

            stage = PipelineStage.PERSIST
            if isinstance(record, NormalizedProduct):
                self._storage.create_product(record)
            else:
                self._storage.upsert_brand(record)
        except Exception as exc:
            return self._fail(kind, identifier, stage, str(exc), url=url)

        log_event(
            logger,
            logging.INFO,
            "extraction_succeeded",
            kind=kind,
            identifier=identifier,
            parent_identifier=parent_identifier,
        )
        return PipelineOutcome(record=record)

    def _register(self, kind: str, record: NormalizedBrand | NormalizedProduct) -> bool:
        if kind == JobKind.PRODUCT and isinstance(record, NormalizedProduct):
            return self._index.add_product(record.brand_slug, record.slug)
        return self._index.add_brand(record.slug)

    @staticmethod
    def _fail(kind: str, identifier: str, stage: str, message: str, *, url: str) -> PipelineOutcome:
        log_event(
            logger,
            logging.WARNING,
            "extraction_failed",
            kind=kind,
            identifier=identifier,
            stage=stage,
            url=url,
            error=message,
        )
        return PipelineOutcome(failure=PipelineFailure(stage=stage, message=message))
