"""Batch orchestration: one uploaded payment file, end to end.

  1. Fingerprint the bytes and refuse a file that was already accepted.
  2. Record a new batch (status=pending).
  3. Parse, map headers, normalize, and validate every row.
  4. Apply each valid record through the ledger reconciler, committing
     per record so one bad row never undoes the others.
  5. Close the batch with its counters (completed), or record the
     pipeline error (failed).

Uploads can run inline or be handed to FastAPI ``BackgroundTasks``; in
both cases the batch row is the status the caller polls.
"""

from __future__ import annotations

import time
import uuid
from datetime import date
from typing import Callable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings, settings
from app.core.logging import get_logger
from app.models.payment_file import (
    BATCH_COMPLETED,
    BATCH_FAILED,
    BATCH_PENDING,
    BATCH_PROCESSING,
    FileBatch,
)
from app.services.arrangements.state_machine import utcnow
from app.services.ingestion.fingerprint import (
    DuplicateFileError,
    compute_fingerprint,
    find_batch_by_fingerprint,
)
from app.services.ingestion.header_mapper import map_headers
from app.services.ingestion.normalizer import normalize_rows
from app.services.ingestion.registry import get_parser, parser_for_type
from app.services.ingestion.validator import validate_records
from app.services.ledger.reconciler import LedgerReconciler
from app.services.notifications import Notifier

logger = get_logger(__name__)


class BatchOrchestrator:
    """Drives a payment file through ingestion and reconciliation."""

    def __init__(
        self,
        db: Session,
        config: Settings,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.db = db
        self.config = config
        self.notifier = notifier

    # ── Public API ───────────────────────────────────────────────────

    def accept(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> FileBatch:
        """Gate on the fingerprint and insert a pending batch.

        Raises:
            UnsupportedFormatError: No parser for the file.
            DuplicateFileError: Same bytes were accepted before.
        """
        parser = get_parser(filename, content_type)
        fingerprint = compute_fingerprint(content)

        existing = find_batch_by_fingerprint(self.db, fingerprint)
        if existing is not None:
            logger.info("Rejected duplicate upload %s (batch %s)", filename, existing.id)
            raise DuplicateFileError(fingerprint, existing.id)

        today = date.today()
        batch = FileBatch(
            id=uuid.uuid4(),
            file_name=filename,
            file_size=len(content),
            file_type=parser.file_type,
            file_hash=fingerprint,
            status=BATCH_PENDING,
            uploaded_by=uploaded_by,
            upload_year=today.year,
            upload_month=today.month,
            upload_week=today.isocalendar()[1],
        )
        self.db.add(batch)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost the race to a concurrent upload of the same bytes.
            self.db.rollback()
            winner = find_batch_by_fingerprint(self.db, fingerprint)
            raise DuplicateFileError(fingerprint, winner.id if winner else None) from exc

        logger.info("Accepted %s as batch %s (%d bytes)", filename, batch.id, len(content))
        return batch

    def run(self, batch: FileBatch, content: bytes) -> FileBatch:
        """Process an accepted batch.  Never raises for pipeline failures."""
        batch_id = batch.id
        started = time.monotonic()
        batch.status = BATCH_PROCESSING
        batch.started_at = utcnow()
        self.db.commit()

        try:
            self._process(batch, content)
        except Exception as exc:
            self.db.rollback()
            logger.exception("Batch %s failed", batch_id)
            batch = self.db.get(FileBatch, batch_id)
            batch.status = BATCH_FAILED
            batch.error_detail = f"{type(exc).__name__}: {exc}"
        else:
            batch.status = BATCH_COMPLETED

        batch.completed_at = utcnow()
        batch.duration_ms = int((time.monotonic() - started) * 1000)
        self.db.commit()
        self.db.refresh(batch)

        logger.info(
            "Batch %s %s: records=%d valid=%d invalid=%d applied=%d failed=%d (%d ms)",
            batch.id,
            batch.status,
            batch.records_count,
            batch.valid_count,
            batch.invalid_count,
            batch.applied_count,
            batch.failed_count,
            batch.duration_ms,
        )
        return batch

    def ingest(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> FileBatch:
        """``accept`` followed by ``run``."""
        batch = self.accept(content, filename, content_type, uploaded_by)
        return self.run(batch, content)

    # ── Private helpers ──────────────────────────────────────────────

    def _process(self, batch: FileBatch, content: bytes) -> None:
        parser = parser_for_type(batch.file_type)
        table = parser.parse(content, batch.file_name)
        mapped = map_headers(table.header)
        logger.debug("Batch %s header mapping: %s", batch.id, dict(zip(table.header, mapped)))

        validation = validate_records(normalize_rows(table.rows, mapped, table.header))
        messages = [str(issue) for issue in validation.errors]

        batch.records_count = validation.total
        batch.valid_count = len(validation.valid_records)
        batch.invalid_count = len(validation.invalid_records)
        batch.warnings_count = len(validation.warnings)
        self.db.commit()

        reconciler = LedgerReconciler(self.db, self.config, self.notifier)
        applied = failed = 0
        for record in validation.valid_records:
            try:
                reconciler.apply(record, batch)
            except Exception as exc:
                self.db.rollback()
                failed += 1
                messages.append(f"Row {record.row_number}: {exc}")
                logger.warning(
                    "Batch %s row %d not applied: %s", batch.id, record.row_number, exc
                )
                continue
            applied += 1

        batch.applied_count = applied
        batch.failed_count = failed
        batch.errors_count = len(validation.errors) + failed
        batch.error_messages = messages[: self.config.error_summary_limit] or None
        batch.metadata_json = {
            "warnings": [
                str(w) for w in validation.warnings[: self.config.error_summary_limit]
            ],
        }


def submit_ingestion_job(
    db_factory: Callable[[], Session],
    db: Session,
    content: bytes,
    filename: str,
    content_type: Optional[str],
    uploaded_by: Optional[str],
    background_tasks: BackgroundTasks,
    notifier: Optional[Notifier] = None,
) -> FileBatch:
    """Accept the file now and process it in the background.

    Returns the pending batch immediately so the caller can poll
    ``GET /payment-files/batches/{id}`` for progress.
    """
    batch = BatchOrchestrator(db, settings, notifier).accept(
        content, filename, content_type, uploaded_by
    )
    background_tasks.add_task(_run_job, db_factory, batch.id, content, notifier)
    return batch


def _run_job(
    db_factory: Callable[[], Session],
    batch_id: uuid.UUID,
    content: bytes,
    notifier: Optional[Notifier],
) -> None:
    """Background task that runs the ingestion pipeline for one batch."""
    db: Session = db_factory()
    try:
        batch = db.get(FileBatch, batch_id)
        if batch is None:
            logger.error("Background job: batch %s disappeared", batch_id)
            return
        BatchOrchestrator(db, settings, notifier).run(batch, content)
    finally:
        db.close()
