"""Daily sweep that defaults overdue arrangements.

Meant to run from cron (``scripts/run_sweep.py``) or the
``POST /api/v1/arrangements/sweep`` endpoint.  Safe to re-run: an
arrangement that is no longer pending is simply not selected, and the
claim UPDATE guards against a concurrent sweep or confirmation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging import get_logger
from app.models.arrangement import ARRANGEMENT_DEFAULTED, ARRANGEMENT_PENDING, Arrangement
from app.services.arrangements.state_machine import claim_transition, transition_event
from app.services.notifications import Notifier, publish_quietly, record_activity

logger = get_logger(__name__)


@dataclass
class SweepResult:
    transitioned: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def _overdue_page(
    db: Session, today: date, after_id: Optional[uuid.UUID], page_size: int
) -> list[Arrangement]:
    stmt = (
        select(Arrangement)
        .where(
            Arrangement.status == ARRANGEMENT_PENDING,
            Arrangement.promised_date < today,
        )
        .order_by(Arrangement.id)
        .limit(page_size)
    )
    if after_id is not None:
        stmt = stmt.where(Arrangement.id > after_id)
    return list(db.execute(stmt).unique().scalars())


def sweep_overdue_arrangements(
    db: Session,
    today: Optional[date] = None,
    page_size: Optional[int] = None,
    notifier: Optional[Notifier] = None,
) -> SweepResult:
    """Default every pending arrangement whose promised date is before *today*.

    Arrangements are read in id order, one page at a time.  Each is
    claimed and its ``ptp_defaulted`` activity written in a single
    commit; if that fails the change is rolled back, counted, and the
    sweep moves on.

    Args:
        db: Session; the sweep commits per arrangement.
        today: Reference date (defaults to the current date).
        page_size: Rows per page (defaults to ``settings.sweep_page_size``).
        notifier: Receives one event per defaulted arrangement.
    """
    today = today or date.today()
    page_size = page_size or settings.sweep_page_size
    result = SweepResult()
    last_id: Optional[uuid.UUID] = None

    logger.info("Arrangement sweep started for %s (page size %d)", today, page_size)

    while True:
        page = _overdue_page(db, today, last_id, page_size)
        if not page:
            break
        # Ids and snapshots are taken up front; a rollback expires the ORM objects.
        snapshots = [
            (a.id, transition_event(a, ARRANGEMENT_DEFAULTED, _describe(a)))
            for a in page
        ]
        last_id = snapshots[-1][0]

        for arrangement_id, event in snapshots:
            try:
                if not claim_transition(db, arrangement_id, ARRANGEMENT_DEFAULTED):
                    db.rollback()
                    continue
                record_activity(db, event)
                db.commit()
            except Exception as exc:
                db.rollback()
                result.failed += 1
                result.errors.append(f"{arrangement_id}: {exc}")
                logger.warning("Failed to default arrangement %s: %s", arrangement_id, exc)
                continue

            result.transitioned += 1
            logger.debug("Arrangement %s defaulted", arrangement_id)
            publish_quietly(notifier, event)

        if len(page) < page_size:
            break

    logger.info(
        "Arrangement sweep finished: %d defaulted, %d failed",
        result.transitioned,
        result.failed,
    )
    return result


def _describe(arrangement: Arrangement) -> str:
    return (
        f"{arrangement.arrangement_type.upper()} of {arrangement.amount} due "
        f"{arrangement.promised_date.isoformat()} was not honoured"
    )
