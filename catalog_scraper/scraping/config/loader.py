"""
Environment config loader for catalog scraping.
"""

from __future__ import annotations

import os
from functools import lru_cache

from db.config import load_env_files

from catalog_scraper.scraping.config.models import DEFAULT_USER_AGENTS, ScraperSettings


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_user_agents_env(name: str) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return DEFAULT_USER_AGENTS
    agents = tuple(agent.strip() for agent in raw.split(",") if agent.strip())
    return agents or DEFAULT_USER_AGENTS


def load_scraper_settings() -> ScraperSettings:
    """
    Build scraper settings from environment variables.
    """

    load_env_files()
    return ScraperSettings(
        base_url=_get_str_env("SCRAPER_BASE_URL", "https://htreviews.org").rstrip("/"),
        max_concurrent_brands=max(1, _get_int_env("SCRAPER_MAX_CONCURRENT_BRANDS", 1)),
        max_concurrent_products=max(1, _get_int_env("SCRAPER_MAX_CONCURRENT_PRODUCTS", 1)),
        checkpoint_interval=max(1, _get_int_env("SCRAPER_CHECKPOINT_INTERVAL", 1)),
        max_discovery_iterations=max(
            1,
            _get_int_env("SCRAPER_MAX_DISCOVERY_ITERATIONS", 1000),
        ),
        request_timeout_seconds=max(
            1.0,
            _get_float_env("SCRAPER_REQUEST_TIMEOUT", 30.0),
        ),
        max_retries=max(0, _get_int_env("SCRAPER_MAX_RETRIES", 3)),
        retry_delay_base_seconds=max(
            0.0,
            _get_float_env("SCRAPER_RETRY_DELAY_BASE", 1.0),
        ),
        retry_delay_max_seconds=max(
            0.0,
            _get_float_env("SCRAPER_RETRY_DELAY_MAX", 30.0),
        ),
        retry_jitter_ratio=min(
            1.0,
            max(0.0, _get_float_env("SCRAPER_RETRY_JITTER_RATIO", 0.25)),
        ),
        rate_limit_per_second=max(
            0.1,
            _get_float_env("SCRAPER_RATE_LIMIT_RPS", 2.0),
        ),
        rate_limit_burst=max(1, _get_int_env("SCRAPER_RATE_LIMIT_BURST", 5)),
        user_agents=_get_user_agents_env("SCRAPER_USER_AGENTS"),
    )


@lru_cache(maxsize=1)
def get_scraper_settings() -> ScraperSettings:
    """
    Return cached scraper settings from environment variables.
    """

    return load_scraper_settings()
