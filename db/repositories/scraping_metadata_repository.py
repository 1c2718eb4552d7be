"""
Repository for scrape run lifecycle persistence.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.scraping_metadata import ScrapingMetadata, ScrapingOperationStatus


class ScrapingMetadataRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, *, operation_type: str, started_at: datetime) -> ScrapingMetadata:
        row = ScrapingMetadata(
            operation_type=operation_type,
            status=ScrapingOperationStatus.IN_PROGRESS,
            started_at=started_at,
            brands_processed=0,
            products_processed=0,
            error_count=0,
        )
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return row

    def get(self, operation_id: int) -> ScrapingMetadata | None:
        return self._session.get(ScrapingMetadata, operation_id)

    def update_counts(
        self,
        operation_id: int,
        *,
        brands_processed: int | None = None,
        products_processed: int | None = None,
    ) -> ScrapingMetadata | None:
        row = self.get(operation_id)
        if row is None:
            return None
        if brands_processed is not None:
            row.brands_processed = brands_processed
        if products_processed is not None:
            row.products_processed = products_processed
        return row

    def increment_error_count(self, operation_id: int) -> bool:
        """
        Add one to error_count in SQL so concurrent writers never lose an increment.
        Returns False when the row does not exist.
        """

        stmt = (
            update(ScrapingMetadata)
            .where(ScrapingMetadata.id == operation_id)
            .values(error_count=ScrapingMetadata.error_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def mark_completed(
        self,
        operation_id: int,
        *,
        brands_processed: int,
        products_processed: int,
    ) -> ScrapingMetadata | None:
        row = self.get(operation_id)
        if row is None:
            return None
        row.status = ScrapingOperationStatus.COMPLETED
        row.completed_at = utc_now()
        row.brands_processed = brands_processed
        row.products_processed = products_processed
        return row

    def mark_failed(
        self,
        operation_id: int,
        *,
        reason: str,
    ) -> ScrapingMetadata | None:
        row = self.get(operation_id)
        if row is None:
            return None
        row.status = ScrapingOperationStatus.FAILED
        row.completed_at = utc_now()
        row.error_details = {"reason": reason}
        return row
