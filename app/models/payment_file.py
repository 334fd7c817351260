"""Payment file model: tracks each ingestion run of an uploaded file."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

BATCH_PENDING = "pending"
BATCH_PROCESSING = "processing"
BATCH_COMPLETED = "completed"
BATCH_FAILED = "failed"


class FileBatch(Base):
    """One ingestion run of a single uploaded payment file.

    Lifecycle: pending -> processing -> completed | failed.  Only the
    batch orchestrator mutates these rows; completed and failed are
    terminal.  ``file_hash`` is unique so the same bytes can never be
    accepted twice.
    """

    __tablename__ = "payment_files"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    file_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    file_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="csv | xlsx | xls",
    )
    file_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BATCH_PENDING,
        comment="pending | processing | completed | failed",
    )
    uploaded_by: Mapped[Optional[str]] = mapped_column(
        String(100),
    )
    upload_year: Mapped[Optional[int]] = mapped_column(
        Integer,
    )
    upload_month: Mapped[Optional[int]] = mapped_column(
        Integer,
    )
    upload_week: Mapped[Optional[int]] = mapped_column(
        Integer,
        comment="ISO week number of the upload",
    )

    # -- Counters --
    records_count: Mapped[int] = mapped_column(Integer, default=0)
    valid_count: Mapped[int] = mapped_column(Integer, default=0)
    invalid_count: Mapped[int] = mapped_column(Integer, default=0)
    applied_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, default=0)
    errors_count: Mapped[int] = mapped_column(Integer, default=0)
    warnings_count: Mapped[int] = mapped_column(Integer, default=0)

    error_messages: Mapped[Optional[list[str]]] = mapped_column(
        JSON,
        nullable=True,
    )
    error_detail: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # -- Timing --
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
    )
    duration_ms: Mapped[Optional[int]] = mapped_column(
        Integer,
    )
    metadata_json: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (BATCH_COMPLETED, BATCH_FAILED)

    def __repr__(self) -> str:
        return (
            f"<FileBatch(file_name={self.file_name!r}, status={self.status!r}, "
            f"records_count={self.records_count})>"
        )
