"""
SQLAlchemy-backed storage implementation for catalog records.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_scraper.scraping.errors import CatalogStorageError
from catalog_scraper.scraping.storage.base import CatalogStorage
from catalog_scraper.scraping.types import NormalizedBrand, NormalizedProduct
from db.base import Base
from db.repositories.brand_repository import BrandRepository
from db.repositories.product_repository import ProductRepository
from db.repositories.scraping_metadata_repository import ScrapingMetadataRepository

METADATA_PATCH_FIELDS = {"brands_processed", "products_processed"}


def create_schema(engine: Engine) -> None:
    """
    Create catalog and metadata tables on `engine` if they do not exist.
    """

    import db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


class SQLAlchemyCatalogStorage(CatalogStorage):
    """
    Persist catalog records through the repositories, one session per call.
    """

    def __init__(self, *, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise CatalogStorageError(f"Failed to {action}: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def upsert_brand(self, record: NormalizedBrand) -> int:
        with self._transaction(f"upsert brand {record.slug}") as session:
            brand = BrandRepository(session).upsert(
                slug=record.slug,
                name=record.name,
                source_url=record.source_url,
                description=record.description,
                image_url=record.image_url,
                scraped_at=record.scraped_at,
            )
            return brand.id

    def create_product(self, record: NormalizedProduct) -> int:
        with self._transaction(f"store product {record.brand_slug}/{record.slug}") as session:
            brand = BrandRepository(session).get_by_slug(record.brand_slug)
            if brand is None:
                raise CatalogStorageError(f"Brand not found for product: {record.brand_slug}")
            product = ProductRepository(session).upsert(
                brand_id=brand.id,
                slug=record.slug,
                name=record.name,
                source_url=record.source_url,
                description=record.description,
                image_url=record.image_url,
                scraped_at=record.scraped_at,
            )
            return product.id

    def create_operation_metadata(self, *, operation_type: str, started_at: datetime) -> int:
        with self._transaction("create operation metadata") as session:
            row = ScrapingMetadataRepository(session).create(
                operation_type=operation_type,
                started_at=started_at,
            )
            return row.id

    def update_operation_metadata(self, operation_id: int, patch: Mapping[str, int]) -> None:
        unknown = set(patch) - METADATA_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Unsupported metadata fields: {sorted(unknown)}")
        with self._transaction(f"update operation {operation_id}") as session:
            row = ScrapingMetadataRepository(session).update_counts(
                operation_id,
                brands_processed=patch.get("brands_processed"),
                products_processed=patch.get("products_processed"),
            )
            if row is None:
                raise CatalogStorageError(f"Operation metadata not found: {operation_id}")

    def increment_error_count(self, operation_id: int) -> None:
        with self._transaction(f"increment errors for operation {operation_id}") as session:
            if not ScrapingMetadataRepository(session).increment_error_count(operation_id):
                raise CatalogStorageError(f"Operation metadata not found: {operation_id}")

    def complete_operation(
        self,
        operation_id: int,
        brands_processed: int,
        products_processed: int,
    ) -> None:
        with self._transaction(f"complete operation {operation_id}") as session:
            row = ScrapingMetadataRepository(session).mark_completed(
                operation_id,
                brands_processed=brands_processed,
                products_processed=products_processed,
            )
            if row is None:
                raise CatalogStorageError(f"Operation metadata not found: {operation_id}")

    def fail_operation(self, operation_id: int, reason: str) -> None:
        with self._transaction(f"fail operation {operation_id}") as session:
            row = ScrapingMetadataRepository(session).mark_failed(operation_id, reason=reason)
            if row is None:
                raise CatalogStorageError(f"Operation metadata not found: {operation_id}")
