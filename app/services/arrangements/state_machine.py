"""Arrangement (promise-to-pay / settlement) lifecycle.

    pending --confirm/auto-settle--> paid
    pending --promised date passed--> defaulted

``paid`` and ``defaulted`` are terminal.  Every transition goes through
``claim_transition``, a conditional UPDATE that only touches the row if
it is still in the expected state, so a payment confirmation racing the
overdue sweep can never move one arrangement twice.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.models.account import Account
from app.models.arrangement import (
    ARRANGEMENT_DEFAULTED,
    ARRANGEMENT_PAID,
    ARRANGEMENT_PENDING,
    Arrangement,
)
from app.services.accounts import get_account
from app.services.notifications import (
    PTP_CREATED,
    PTP_DEFAULTED,
    PTP_PAID,
    ActivityEvent,
    Notifier,
    publish_quietly,
    record_activity,
)

logger = get_logger(__name__)

ARRANGEMENT_TYPES = ("ptp", "settlement")

TRANSITIONS: dict[str, frozenset[str]] = {
    ARRANGEMENT_PENDING: frozenset({ARRANGEMENT_PAID, ARRANGEMENT_DEFAULTED}),
    ARRANGEMENT_PAID: frozenset(),
    ARRANGEMENT_DEFAULTED: frozenset(),
}

_ACTIVITY_FOR_STATUS = {
    ARRANGEMENT_PAID: PTP_PAID,
    ARRANGEMENT_DEFAULTED: PTP_DEFAULTED,
}


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move arrangement from {current!r} to {target!r}")


class ArrangementNotFoundError(LookupError):
    def __init__(self, arrangement_id: uuid.UUID):
        self.arrangement_id = arrangement_id
        super().__init__(f"Arrangement not found: {arrangement_id}")


class InvalidArrangementError(ValueError):
    """Rejected arrangement input (non-positive amount, unknown type)."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_transition(current: str, target: str) -> None:
    """Raise ``InvalidTransitionError`` unless ``current -> target`` is allowed."""
    if target not in TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, target)


def claim_transition(
    db: Session,
    arrangement_id: uuid.UUID,
    target: str,
    expected: str = ARRANGEMENT_PENDING,
) -> bool:
    """Atomically move one arrangement from *expected* to *target*.

    Returns True if this call made the change, False if the row was not
    in *expected* (already resolved by someone else).  Does not commit.
    """
    ensure_transition(expected, target)
    stmt = (
        update(Arrangement)
        .where(Arrangement.id == arrangement_id, Arrangement.status == expected)
        .values(status=target, resolved_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def transition_event(
    arrangement: Arrangement,
    target: str,
    description: str,
    batch_id: Optional[uuid.UUID] = None,
) -> ActivityEvent:
    return ActivityEvent(
        activity_type=_ACTIVITY_FOR_STATUS[target],
        account_id=arrangement.account_id,
        description=description,
        amount=arrangement.amount,
        batch_id=batch_id,
        arrangement_id=arrangement.id,
        metadata={
            "arrangement_type": arrangement.arrangement_type,
            "promised_date": arrangement.promised_date.isoformat(),
        },
    )


def get_arrangement(db: Session, arrangement_id: uuid.UUID) -> Arrangement:
    arrangement = db.get(Arrangement, arrangement_id)
    if arrangement is None:
        raise ArrangementNotFoundError(arrangement_id)
    return arrangement


def create_arrangement(
    db: Session,
    account_number: str,
    amount: Decimal,
    promised_date: date,
    arrangement_type: str = "ptp",
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Arrangement:
    """Record a new pending arrangement for an existing account.

    Raises:
        AccountNotFoundError: Unknown account number.
        InvalidArrangementError: Amount is not positive or the type is unknown.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise InvalidArrangementError("Arrangement amount must be greater than zero")
    if arrangement_type not in ARRANGEMENT_TYPES:
        raise InvalidArrangementError(f"Unknown arrangement type: {arrangement_type!r}")

    account = get_account(db, account_number)
    arrangement = Arrangement(
        id=uuid.uuid4(),
        account_id=account.id,
        arrangement_type=arrangement_type,
        amount=amount.quantize(Decimal("0.01")),
        promised_date=promised_date,
        payment_method=payment_method,
        notes=notes,
        status=ARRANGEMENT_PENDING,
        created_by=created_by,
    )
    db.add(arrangement)
    # The activity row references the arrangement; insert it first.
    db.flush()

    event = ActivityEvent(
        activity_type=PTP_CREATED,
        account_id=account.id,
        description=(
            f"{arrangement_type.upper()} of {arrangement.amount} promised for "
            f"{promised_date.isoformat()}"
        ),
        amount=arrangement.amount,
        arrangement_id=arrangement.id,
        metadata={"arrangement_type": arrangement_type},
    )
    record_activity(db, event, created_by=created_by or "System")
    db.commit()
    db.refresh(arrangement)

    logger.info(
        "Arrangement %s created for %s: %s due %s",
        arrangement.id,
        account.account_number,
        arrangement.amount,
        promised_date,
    )
    publish_quietly(notifier, event)
    return arrangement


def mark_paid(
    db: Session,
    arrangement_id: uuid.UUID,
    confirmed_by: str = "System",
    notifier: Optional[Notifier] = None,
) -> Arrangement:
    """Confirm payment of a pending arrangement.

    Raises:
        ArrangementNotFoundError: No such arrangement.
        InvalidTransitionError: Already paid or defaulted.
    """
    arrangement = get_arrangement(db, arrangement_id)
    ensure_transition(arrangement.status, ARRANGEMENT_PAID)

    if not claim_transition(db, arrangement_id, ARRANGEMENT_PAID):
        db.rollback()
        db.refresh(arrangement)
        raise InvalidTransitionError(arrangement.status, ARRANGEMENT_PAID)

    event = transition_event(
        arrangement, ARRANGEMENT_PAID, f"Payment confirmed by {confirmed_by}"
    )
    record_activity(db, event, created_by=confirmed_by)
    db.commit()
    db.refresh(arrangement)

    logger.info("Arrangement %s marked paid by %s", arrangement_id, confirmed_by)
    publish_quietly(notifier, event)
    return arrangement


def settle_for_payment(
    db: Session,
    account: Account,
    payment_amount: Decimal,
    payment_date: date,
    batch_id: Optional[uuid.UUID] = None,
    notifier: Optional[Notifier] = None,
) -> list[uuid.UUID]:
    """Mark paid every pending arrangement the payment covers.

    An arrangement is covered when its amount is at most the payment and
    it was promised for no later than the payment date.
    Each one is claimed and committed on its own; one that was resolved
    concurrently is skipped.

    Returns:
        Ids of the arrangements this call settled.
    """
    stmt = (
        select(Arrangement.id)
        .where(
            Arrangement.account_id == account.id,
            Arrangement.status == ARRANGEMENT_PENDING,
            Arrangement.amount <= payment_amount,
            Arrangement.promised_date <= payment_date,
        )
        .order_by(Arrangement.promised_date, Arrangement.id)
    )
    candidate_ids = list(db.execute(stmt).scalars())

    settled: list[uuid.UUID] = []
    for arrangement_id in candidate_ids:
        if not claim_transition(db, arrangement_id, ARRANGEMENT_PAID):
            db.rollback()
            continue
        arrangement = db.get(Arrangement, arrangement_id)
        event = transition_event(
            arrangement,
            ARRANGEMENT_PAID,
            f"Settled by file payment of {payment_amount}",
            batch_id=batch_id,
        )
        record_activity(db, event)
        db.commit()
        settled.append(arrangement_id)
        publish_quietly(notifier, event)

    if settled:
        logger.info(
            "Auto-settled %d arrangements for %s", len(settled), account.account_number
        )
    return settled
