"""
Domain models for catalog scrape runs.
"""

from catalog_scraper.domain.catalog_scraping import CatalogScrapeSummary

__all__ = ["CatalogScrapeSummary"]
