"""
Service layer exports.
"""

from catalog_scraper.services.catalog_scraping_service import (
    CatalogScrapingService,
    get_catalog_scraping_service,
)

__all__ = ["CatalogScrapingService", "get_catalog_scraping_service"]
