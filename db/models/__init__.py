"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.brand import Brand
from db.models.product import Product
from db.models.scraping_metadata import (
    ScrapingMetadata,
    ScrapingOperationStatus,
    ScrapingOperationType,
)

__all__ = [
    "Brand",
    "Product",
    "ScrapingMetadata",
    "ScrapingOperationStatus",
    "ScrapingOperationType",
]
