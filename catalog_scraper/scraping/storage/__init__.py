"""
Storage layer exports.
"""

from catalog_scraper.scraping.storage.base import CatalogStorage
from catalog_scraper.scraping.storage.sqlalchemy_storage import SQLAlchemyCatalogStorage, create_schema

__all__ = ["CatalogStorage", "SQLAlchemyCatalogStorage", "create_schema"]
