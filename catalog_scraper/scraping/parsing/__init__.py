"""
HTML parsing layer exports.
"""

from catalog_scraper.scraping.parsing.html_parsers import CatalogHTMLParser, clean_text

__all__ = ["CatalogHTMLParser", "clean_text"]
