"""
In-memory duplicate detection for brands and products.
"""

from __future__ import annotations

import threading


def normalize_key(identifier: str) -> str:
    return identifier.strip().casefold()


class DuplicateIndex:
    """
    Case-insensitive membership index for brand and per-brand product keys.

    `total_count` equals the number of non-duplicate insertions since the last
    `reset`. There is no removal operation.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._brand_keys: set[str] = set()
        self._product_keys_by_brand: dict[str, set[str]] = {}
        self._total_count = 0

    @property
    def total_count(self) -> int:
        with self._lock:
            return self._total_count

    def add_brand(self, identifier: str) -> bool:
        """
        Register a brand key and return True if it was already present.
        """

        key = normalize_key(identifier)
        with self._lock:
            if key in self._brand_keys:
                return True
            self._brand_keys.add(key)
            self._total_count += 1
            return False

    def add_product(self, brand_identifier: str, identifier: str) -> bool:
        """
        Register a product key under its brand and return True if already present.
        """

        brand_key = normalize_key(brand_identifier)
        key = normalize_key(identifier)
        with self._lock:
            products = self._product_keys_by_brand.setdefault(brand_key, set())
            if key in products:
                return True
            products.add(key)
            self._total_count += 1
            return False

    def has_brand(self, identifier: str) -> bool:
        with self._lock:
            return normalize_key(identifier) in self._brand_keys

    def has_product(self, brand_identifier: str, identifier: str) -> bool:
        with self._lock:
            products = self._product_keys_by_brand.get(normalize_key(brand_identifier))
            return products is not None and normalize_key(identifier) in products

    def brand_count(self) -> int:
        with self._lock:
            return len(self._brand_keys)

    def product_count(self) -> int:
        with self._lock:
            return sum(len(products) for products in self._product_keys_by_brand.values())

    def product_count_for(self, brand_identifier: str) -> int:
        with self._lock:
            return len(self._product_keys_by_brand.get(normalize_key(brand_identifier), ()))

    def brands(self) -> list[str]:
        with self._lock:
            return sorted(self._brand_keys)

    def products(self) -> list[tuple[str, str]]:
        with self._lock:
            return [
                (brand_key, product_key)
                for brand_key, products in sorted(self._product_keys_by_brand.items())
                for product_key in sorted(products)
            ]

    def reset(self) -> None:
        with self._lock:
            self._brand_keys.clear()
            self._product_keys_by_brand.clear()
            self._total_count = 0
