"""
db/models/scraping_metadata.py

Lifecycle record for one scrape run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ScrapingOperationType:
    FULL_REFRESH = "full_refresh"
    INCREMENTAL_UPDATE = "incremental_update"


class ScrapingOperationStatus:
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapingMetadata(Base, TimestampMixin):
    __tablename__ = "scraping_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="full_refresh, incremental_update",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ScrapingOperationStatus.IN_PROGRESS,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    brands_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    products_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_details: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
        comment="Failure reason and run context",
    )

    __table_args__ = (
        Index("ix_scraping_metadata_status", "status"),
        Index("ix_scraping_metadata_started_at", "started_at"),
    )
