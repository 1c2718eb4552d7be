"""
URL helpers shared by fetching, discovery and normalization.
"""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse


def is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def with_query_params(url: str, params: Mapping[str, object] | None) -> str:
    """
    Return `url` with `params` set on its query string, replacing existing keys.
    """

    if not params:
        return url
    parsed = urlparse(url)
    query = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query.update({key: str(value) for key, value in params.items()})
    return urlunparse(parsed._replace(query=urlencode(query)))


def resolve_url(url: str | None, base_url: str) -> str | None:
    if url is None:
        return None
    stripped = url.strip()
    if not stripped:
        return None
    if stripped.startswith(("http://", "https://")):
        return stripped
    return urljoin(f"{base_url.rstrip('/')}/", stripped.lstrip("/"))


def extract_slug(url: str) -> str | None:
    """
    Return the last non-empty path segment of `url`.
    """

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    parts = [part for part in parsed.path.split("/") if part]
    return parts[-1] if parts else None
