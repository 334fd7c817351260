"""Account activity recording and the notification collaborator.

SMS and email delivery live outside this service.  Anything that reacts
to ledger events implements ``Notifier``; the default just logs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.models.activity import AccountActivity

logger = get_logger(__name__)

PAYMENT_RECEIVED = "payment_received"
PTP_CREATED = "ptp_created"
PTP_PAID = "ptp_paid"
PTP_DEFAULTED = "ptp_defaulted"


@dataclass(frozen=True)
class ActivityEvent:
    """A ledger or arrangement event worth telling someone about."""

    activity_type: str
    account_id: uuid.UUID
    description: str
    amount: Optional[Decimal] = None
    batch_id: Optional[uuid.UUID] = None
    arrangement_id: Optional[uuid.UUID] = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    def publish(self, event: ActivityEvent) -> None: ...


class LoggingNotifier:
    """Notifier that only writes events to the application log."""

    def publish(self, event: ActivityEvent) -> None:
        logger.info(
            "Notify %s for account %s: %s",
            event.activity_type,
            event.account_id,
            event.description,
        )


def record_activity(
    db: Session,
    event: ActivityEvent,
    created_by: str = "System",
) -> AccountActivity:
    """Add an ``AccountActivity`` row for *event* to the session.

    The caller owns the transaction, so the activity commits (or rolls
    back) together with whatever change produced it.
    """
    activity = AccountActivity(
        id=uuid.uuid4(),
        account_id=event.account_id,
        activity_type=event.activity_type,
        description=event.description,
        amount=event.amount,
        batch_id=event.batch_id,
        arrangement_id=event.arrangement_id,
        created_by_name=created_by,
        metadata_json=event.metadata or None,
    )
    db.add(activity)
    return activity


def publish_quietly(notifier: Optional[Notifier], event: ActivityEvent) -> None:
    """Hand *event* to the notifier; delivery problems are logged, not raised."""
    if notifier is None:
        return
    try:
        notifier.publish(event)
    except Exception:
        logger.exception(
            "Notifier failed for %s on account %s", event.activity_type, event.account_id
        )


_default_notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency returning the process-wide notifier."""
    return _default_notifier
