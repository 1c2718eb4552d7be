"""
BeautifulSoup-based parsing layer for catalog list and detail pages.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from catalog_scraper.scraping.errors import ParseError
from catalog_scraper.scraping.logging_utils import log_event
from catalog_scraper.scraping.types import (
    BrandDetail,
    DiscoveryScope,
    JobKind,
    ListRecord,
    PageInfo,
    ParsedListPage,
    ProductDetail,
)
from catalog_scraper.scraping.urls import resolve_url

logger = logging.getLogger(__name__)

LIST_CONTAINER_SELECTOR = ".tobacco_list_items"
LIST_ITEM_SELECTOR = ".tobacco_list_item"
LIST_ITEM_LINK_SELECTOR = ".tobacco_list_item_slug"
DETAIL_NAME_SELECTOR = ".object_card_title h1"
DETAIL_DESCRIPTION_SELECTOR = ".object_card_discr span"
DETAIL_IMAGE_SELECTOR = ".object_image img"

_WHITESPACE = re.compile(r"\s+")


class CatalogHTMLParser:
    """
    Deterministic parser for the brand -> product catalog markup.
    """

    def __init__(self, *, base_url: str, catalog_root_path: str = "/tobaccos") -> None:
        self._base_url = base_url.rstrip("/")
        self._catalog_root_path = catalog_root_path

    def parse_list_page(self, body: str, scope: DiscoveryScope) -> ParsedListPage:
        """
        Parse list entries and pagination from a brand or product list page.

        Markup without the list container yields an empty page, not an error.
        """

        soup = BeautifulSoup(body, "html.parser")
        container = soup.select_one(LIST_CONTAINER_SELECTOR)
        if container is None:
            log_event(
                logger,
                logging.WARNING,
                "list_container_missing",
                scope=scope.label,
                selector=LIST_CONTAINER_SELECTOR,
            )
            return ParsedListPage(
                records=[],
                page_info=PageInfo(
                    target_scope=None,
                    offset=0,
                    count_on_page=0,
                    total_count=0,
                    has_more=False,
                ),
            )

        items = container.select(LIST_ITEM_SELECTOR)
        prefer_last_name = scope.kind == JobKind.BRAND
        records: list[ListRecord] = []
        for item in items:
            record = self._parse_list_item(item, prefer_last_name=prefer_last_name)
            if record is not None:
                records.append(record)

        return ParsedListPage(
            records=records,
            page_info=self._page_info(container, count_on_page=len(items), parsed=len(records)),
        )

    def parse_detail_page(
        self,
        body: str,
        identifier: str,
        parent_identifier: str | None = None,
    ) -> BrandDetail | ProductDetail:
        """
        Parse a brand detail page, or a product detail page when a parent is given.
        """

        soup = BeautifulSoup(body, "html.parser")
        name_node = soup.select_one(DETAIL_NAME_SELECTOR)
        name = clean_text(name_node.get_text(" ", strip=True)) if name_node else ""
        if not name:
            raise ParseError(
                "Detail page name not found",
                element=DETAIL_NAME_SELECTOR,
                html=body,
            )

        description_node = soup.select_one(DETAIL_DESCRIPTION_SELECTOR)
        description = clean_text(description_node.get_text(" ", strip=True)) if description_node else None
        image_url = self._image_url(soup.select_one(DETAIL_IMAGE_SELECTOR))

        if parent_identifier is None:
            return BrandDetail(
                name=name,
                source_url=f"{self._base_url}{self._catalog_root_path}/{identifier}",
                description=description or None,
                image_url=image_url,
            )
        return ProductDetail(
            name=name,
            source_url=f"{self._base_url}{self._catalog_root_path}/{parent_identifier}/{identifier}",
            brand_slug=parent_identifier,
            description=description or None,
            image_url=image_url,
        )

    @staticmethod
    def is_discovery_complete(page_info: PageInfo, accumulated_count: int) -> bool:
        if page_info.total_count <= 0:
            return True
        if accumulated_count >= page_info.total_count:
            return True
        return page_info.offset + page_info.count_on_page >= page_info.total_count

    def _parse_list_item(self, item: Tag, *, prefer_last_name: bool) -> ListRecord | None:
        link = item.select_one(LIST_ITEM_LINK_SELECTOR)
        if link is None:
            return None
        spans = link.find_all("span")
        if not spans:
            log_event(logger, logging.DEBUG, "list_item_without_name")
            return None
        name_span = spans[-1] if prefer_last_name else spans[0]
        name = clean_text(name_span.get_text(" ", strip=True))
        href = link.get("href")
        source_url = resolve_url(href if isinstance(href, str) else None, self._base_url)
        if not name or source_url is None:
            log_event(logger, logging.DEBUG, "list_item_skipped", name=name, href=href)
            return None
        return ListRecord(name=name, source_url=source_url)

    @staticmethod
    def _page_info(container: Tag, *, count_on_page: int, parsed: int) -> PageInfo:
        target = container.get("data-target")
        offset = _int_attr(container, "data-offset")
        total_count = _int_attr(container, "data-total-count")
        if not isinstance(target, str) or offset is None or total_count is None:
            return PageInfo(
                target_scope=None,
                offset=0,
                count_on_page=count_on_page,
                total_count=parsed,
                has_more=False,
            )
        return PageInfo(
            target_scope=target,
            offset=offset,
            count_on_page=count_on_page,
            total_count=total_count,
            has_more=offset + count_on_page < total_count,
        )

    def _image_url(self, node: Tag | None) -> str | None:
        if node is None:
            return None
        src = node.get("src")
        return resolve_url(src if isinstance(src, str) else None, self._base_url)


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def _int_attr(node: Tag, name: str) -> int | None:
    raw = node.get(name)
    if not isinstance(raw, str):
        return None
    stripped = raw.strip()
    if not stripped.lstrip("-").isdigit():
        return None
    return int(stripped)
