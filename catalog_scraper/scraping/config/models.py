"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)


@dataclass(frozen=True)
class SiteLayout:
    """
    URL layout of the scraped catalog site.
    """

    base_url: str
    brand_list_path: str = "/tobaccos/brands"
    catalog_root_path: str = "/tobaccos"

    def brand_list_url(self) -> str:
        return f"{self.base_url}{self.brand_list_path}"

    def brand_url(self, brand_slug: str) -> str:
        return f"{self.base_url}{self.catalog_root_path}/{brand_slug}"

    def product_url(self, brand_slug: str, product_slug: str) -> str:
        return f"{self.base_url}{self.catalog_root_path}/{brand_slug}/{product_slug}"


@dataclass(frozen=True)
class ScraperSettings:
    """
    Runtime settings for catalog scraping.

    Durations are in seconds.
    """

    base_url: str = "https://htreviews.org"
    max_concurrent_brands: int = 1
    max_concurrent_products: int = 1
    checkpoint_interval: int = 1
    max_discovery_iterations: int = 1000
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_delay_base_seconds: float = 1.0
    retry_delay_max_seconds: float = 30.0
    retry_jitter_ratio: float = 0.25
    rate_limit_per_second: float = 2.0
    rate_limit_burst: int = 5
    user_agents: tuple[str, ...] = field(default_factory=lambda: DEFAULT_USER_AGENTS)

    @property
    def layout(self) -> SiteLayout:
        return SiteLayout(base_url=self.base_url.rstrip("/"))
