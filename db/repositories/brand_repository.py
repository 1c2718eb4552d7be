"""
Repository for catalog brand persistence.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.brand import Brand


class BrandRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_slug(self, slug: str) -> Brand | None:
        return self._session.scalars(select(Brand).where(Brand.slug == slug)).first()

    def upsert(
        self,
        *,
        slug: str,
        name: str,
        source_url: str,
        description: str | None = None,
        image_url: str | None = None,
        scraped_at: datetime | None = None,
    ) -> Brand:
        """
        Insert a brand or refresh the existing row with the same slug.
        """

        values: dict[str, Any] = {
            "name": name,
            "source_url": source_url,
            "description": description,
            "image_url": image_url,
            "scraped_at": scraped_at,
        }
        brand = self.get_by_slug(slug)
        if brand is None:
            brand = Brand(slug=slug, **values)
            self._session.add(brand)
        else:
            for key, value in values.items():
                setattr(brand, key, value)
        self._session.flush()
        return brand
