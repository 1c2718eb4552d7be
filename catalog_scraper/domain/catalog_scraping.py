"""
catalog_scraper/domain/catalog_scraping.py

Domain models for catalog scrape orchestration.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CatalogScrapeSummary:
    """
    Summary for one catalog scrape run.
    """

    operation_id: int | None
    operation_type: str
    status: str
    brands_discovered: int
    brands_processed: int
    products_discovered: int
    products_processed: int
    errors_encountered: int
    percentage: float
    brands: list[str] = field(default_factory=list)
