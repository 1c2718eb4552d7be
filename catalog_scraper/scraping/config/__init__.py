"""
Config helpers for catalog scraping.
"""

from catalog_scraper.scraping.config.loader import get_scraper_settings, load_scraper_settings
from catalog_scraper.scraping.config.models import ScraperSettings, SiteLayout

__all__ = [
    "ScraperSettings",
    "SiteLayout",
    "get_scraper_settings",
    "load_scraper_settings",
]
