"""
Repository layer exports.
"""

from db.repositories.brand_repository import BrandRepository
from db.repositories.product_repository import ProductRepository
from db.repositories.scraping_metadata_repository import ScrapingMetadataRepository

__all__ = [
    "BrandRepository",
    "ProductRepository",
    "ScrapingMetadataRepository",
]
