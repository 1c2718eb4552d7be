"""
Repository for catalog product persistence.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.product import Product


class ProductRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, *, brand_id: int, slug: str) -> Product | None:
        stmt = select(Product).where(Product.brand_id == brand_id, Product.slug == slug)
        return self._session.scalars(stmt).first()

    def upsert(
        self,
        *,
        brand_id: int,
        slug: str,
        name: str,
        source_url: str,
        description: str | None = None,
        image_url: str | None = None,
        scraped_at: datetime | None = None,
    ) -> Product:
        values: dict[str, Any] = {
            "name": name,
            "source_url": source_url,
            "description": description,
            "image_url": image_url,
            "scraped_at": scraped_at,
        }
        product = self.get(brand_id=brand_id, slug=slug)
        if product is None:
            product = Product(brand_id=brand_id, slug=slug, **values)
            self._session.add(product)
        else:
            for key, value in values.items():
                setattr(product, key, value)
        self._session.flush()
        return product
