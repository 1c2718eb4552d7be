"""
Exception types raised by the scraping engine and its collaborators.
"""

from __future__ import annotations

from typing import Any

_HTML_PREVIEW_LIMIT = 500


class ScrapingError(Exception):
    """Base exception for catalog scraping failures."""


class DiscoveryError(ScrapingError):
    """Raised when a discovery walk cannot fetch its first list page."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(ScrapingError):
    """
    Raised when required markup is missing from a page body.
    """

    def __init__(
        self,
        message: str,
        *,
        element: str,
        html: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.element = element
        if len(html) > _HTML_PREVIEW_LIMIT:
            html = html[:_HTML_PREVIEW_LIMIT] + "..."
        self.html = html
        self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "element": self.element,
            "html": self.html,
            "cause": str(self.__cause__) if self.__cause__ is not None else None,
        }


class CatalogStorageError(ScrapingError):
    """Raised when a catalog or metadata write fails."""
