"""
Normalization and validation layer exports.
"""

from catalog_scraper.scraping.normalization.catalog_normalizer import (
    CatalogNormalizer,
    CatalogValidator,
    log_invalid_record,
)

__all__ = ["CatalogNormalizer", "CatalogValidator", "log_invalid_record"]
