"""
Normalization and validation layer for parsed catalog pages.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.parsing.html_parsers import clean_text
from catalog_scraper.scraping.types import (
    BrandDetail,
    NormalizedBrand,
    NormalizedProduct,
    ProductDetail,
    ValidationResult,
)
from catalog_scraper.scraping.urls import extract_slug, is_http_url, resolve_url

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 500
MAX_SLUG_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 10000
MAX_URL_LENGTH = 2000
RECORD_PREVIEW_LIMIT = 500

TRACKING_PARAMS = {"fbclid", "gclid"}
TRACKING_PARAM_PREFIX = "utm_"

_SLUG_INVALID = re.compile(r"[^a-z0-9-]+")
_SLUG_HYPHENS = re.compile(r"-{2,}")


def normalize_url(url: str | None, base_url: str) -> str | None:
    """
    Resolve `url` against `base_url` and drop tracking query parameters.
    """

    resolved = resolve_url(url, base_url)
    if resolved is None:
        return None
    parsed = urlparse(resolved)
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS and not key.startswith(TRACKING_PARAM_PREFIX)
    ]
    return urlunparse(parsed._replace(query=urlencode(query), fragment=""))


def generate_slug(name: str) -> str:
    slug = name.strip().lower().replace(" ", "-").replace("_", "-")
    slug = _SLUG_INVALID.sub("", slug)
    slug = _SLUG_HYPHENS.sub("-", slug)
    return slug.strip("-")


class CatalogNormalizer:
    """
    Convert parsed detail pages into canonical brand and product records.
    """

    def __init__(self, *, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    def normalize(
        self,
        detail: BrandDetail | ProductDetail,
        *,
        scraped_at: datetime | None = None,
    ) -> NormalizedBrand | NormalizedProduct:
        normalized_time = scraped_at or datetime.now(timezone.utc)
        if normalized_time.tzinfo is None:
            normalized_time = normalized_time.replace(tzinfo=timezone.utc)

        name = clean_text(detail.name)
        source_url = normalize_url(detail.source_url, self._base_url) or detail.source_url
        slug = extract_slug(source_url) or generate_slug(name)
        description = clean_text(detail.description) or None
        image_url = normalize_url(detail.image_url, self._base_url)

        if isinstance(detail, ProductDetail):
            return NormalizedProduct(
                slug=slug,
                name=name,
                source_url=source_url,
                brand_slug=detail.brand_slug.strip(),
                scraped_at=normalized_time,
                description=description,
                image_url=image_url,
            )
        return NormalizedBrand(
            slug=slug,
            name=name,
            source_url=source_url,
            scraped_at=normalized_time,
            description=description,
            image_url=image_url,
        )


class CatalogValidator:
    """
    Field-level rules applied before a record is persisted.
    """

    def validate(self, record: NormalizedBrand | NormalizedProduct) -> ValidationResult:
        errors: list[str] = []

        self._check_required(errors, "slug", record.slug, MAX_SLUG_LENGTH)
        self._check_required(errors, "name", record.name, MAX_NAME_LENGTH)

        if record.description is not None and len(record.description) > MAX_DESCRIPTION_LENGTH:
            errors.append(f"description exceeds {MAX_DESCRIPTION_LENGTH} characters")

        self._check_url(errors, "source_url", record.source_url, required=True)
        self._check_url(errors, "image_url", record.image_url, required=False)

        if isinstance(record, NormalizedProduct):
            self._check_required(errors, "brand_slug", record.brand_slug, MAX_SLUG_LENGTH)

        if not isinstance(record.scraped_at, datetime):
            errors.append("scraped_at must be a datetime")

        return ValidationResult(is_valid=not errors, errors=errors)

    @staticmethod
    def _check_required(errors: list[str], field_name: str, value: str | None, limit: int) -> None:
        if not value or not value.strip():
            errors.append(f"{field_name} is required")
        elif len(value) > limit:
            errors.append(f"{field_name} exceeds {limit} characters")

    @staticmethod
    def _check_url(errors: list[str], field_name: str, value: str | None, *, required: bool) -> None:
        if not value:
            if required:
                errors.append(f"{field_name} is required")
            return
        if len(value) > MAX_URL_LENGTH:
            errors.append(f"{field_name} exceeds {MAX_URL_LENGTH} characters")
        elif not is_http_url(value):
            errors.append(f"{field_name} must be an absolute http(s) URL")


def log_invalid_record(
    record: NormalizedBrand | NormalizedProduct,
    errors: list[str],
    *,
    kind: str,
) -> None:
    preview = json.dumps(asdict(record), default=str, ensure_ascii=False)
    if len(preview) > RECORD_PREVIEW_LIMIT:
        preview = preview[:RECORD_PREVIEW_LIMIT] + "..."
    log_event(
        logger,
        logging.WARNING,
        "record_validation_failed",
        kind=kind,
        slug=record.slug,
        errors=errors,
        record_preview=preview,
    )
