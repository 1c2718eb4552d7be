"""
Storage layer interfaces for catalog records and scrape run metadata.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime

from catalog_scraper.scraping.types import NormalizedBrand, NormalizedProduct


class CatalogStorage(ABC):
    """
    Storage abstraction for catalog writes and operation lifecycle rows.

    Implementations raise `CatalogStorageError` when a write fails.
    """

    @abstractmethod
    def upsert_brand(self, record: NormalizedBrand) -> int:
        """
        Insert or refresh a brand by slug and return its row id.
        """

    @abstractmethod
    def create_product(self, record: NormalizedProduct) -> int:
        """
        Insert or refresh a product under its brand and return its row id.
        """

    @abstractmethod
    def create_operation_metadata(self, *, operation_type: str, started_at: datetime) -> int:
        """
        Create an in-progress operation row and return its id.
        """

    @abstractmethod
    def update_operation_metadata(self, operation_id: int, patch: Mapping[str, int]) -> None:
        ...

    @abstractmethod
    def increment_error_count(self, operation_id: int) -> None:
        ...

    @abstractmethod
    def complete_operation(
        self,
        operation_id: int,
        brands_processed: int,
        products_processed: int,
    ) -> None:
        ...

    @abstractmethod
    def fail_operation(self, operation_id: int, reason: str) -> None:
        ...
