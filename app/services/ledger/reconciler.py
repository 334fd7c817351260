"""Ledger reconciler: applies one validated payment record to its account.

Per record:
  1. Resolve the account by account number.
  2. Work out the payment amount (absolute value, or the configured default).
  3. Reduce the balance, floored at zero, with an optimistic version check.
  4. Append a payment history row in its own commit.
  5. Record a ``payment_received`` activity and notify.
  6. Optionally settle pending arrangements the payment covers (best effort).

Steps 3 and 4 are separate transactions: a failed history
insert is reported on the outcome but the balance change stands.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import Settings
from app.core.logging import get_logger
from app.models.account import Account
from app.models.payment_file import FileBatch
from app.models.payment_history import PaymentHistoryEntry
from app.services.accounts import get_account
from app.services.arrangements.state_machine import settle_for_payment
from app.services.ingestion.normalizer import UNKNOWN, PaymentRecord, format_payment_date
from app.services.notifications import (
    PAYMENT_RECEIVED,
    ActivityEvent,
    Notifier,
    publish_quietly,
    record_activity,
)

logger = get_logger(__name__)

CENTS = Decimal("0.01")
PAYMENT_METHOD = "File Import"


class InvalidPaymentAmountError(ValueError):
    """The record has no usable amount and defaulting is switched off."""


class ConcurrentUpdateError(RuntimeError):
    """The account kept changing underneath us for every retry."""

    def __init__(self, account_number: str, attempts: int):
        self.account_number = account_number
        self.attempts = attempts
        super().__init__(
            f"Account {account_number} was modified concurrently ({attempts} attempts)"
        )


@dataclass
class ReconciliationOutcome:
    account_number: str
    amount: Decimal
    payment_date: date
    balance_before: Decimal
    balance_after: Decimal
    amount_defaulted: bool = False
    history_recorded: bool = True
    settled_arrangements: list[uuid.UUID] = field(default_factory=list)


def resolve_payment_amount(value: Any, config: Settings) -> tuple[Decimal, bool]:
    """Return ``(amount, defaulted)`` for a normalized amount value.

    Negative amounts are taken as their absolute value.  Zero or missing
    amounts fall back to ``config.default_payment_amount`` when
    ``config.apply_default_payment_amount`` is set.

    Raises:
        InvalidPaymentAmountError: Zero/missing amount and defaulting disabled.
    """
    amount = Decimal("0") if value is UNKNOWN or value is None else Decimal(value)
    amount = abs(amount).quantize(CENTS)
    if amount > 0:
        return amount, False
    if not config.apply_default_payment_amount:
        raise InvalidPaymentAmountError(
            "Payment amount is missing or zero and no default is configured"
        )
    return Decimal(config.default_payment_amount).quantize(CENTS), True


def apply_to_balance(current: Decimal, amount: Decimal) -> Decimal:
    """``max(0, current - amount)``, in cents."""
    return max(Decimal("0"), Decimal(current) - amount).quantize(CENTS)


class LedgerReconciler:
    """Applies payment records to accounts, one committed record at a time."""

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

    def apply(
        self, record: PaymentRecord, batch: Optional[FileBatch] = None
    ) -> ReconciliationOutcome:
        """Apply one valid record.

        Raises:
            AccountNotFoundError: No account with the record's number.
            InvalidPaymentAmountError: See ``resolve_payment_amount``.
            ConcurrentUpdateError: Version conflicts exhausted the retries.
        """
        account_number = str(record.account_number)
        account = get_account(self.db, account_number)
        amount, defaulted = resolve_payment_amount(record.payment_amount, self.config)
        payment_date = (
            record.payment_date if isinstance(record.payment_date, date) else date.today()
        )
        batch_id = batch.id if batch is not None else None

        before, after = self._update_balance(account, amount, payment_date)
        outcome = ReconciliationOutcome(
            account_number=account.account_number,
            amount=amount,
            payment_date=payment_date,
            balance_before=before,
            balance_after=after,
            amount_defaulted=defaulted,
        )

        outcome.history_recorded = self._append_history(
            account, record, outcome, batch_id
        )
        self._record_payment_activity(account, outcome, batch_id, record.row_number)

        if self.config.auto_settle_arrangements:
            outcome.settled_arrangements = self._settle_arrangements(
                account, amount, payment_date, batch_id
            )

        logger.debug(
            "Row %d: %s paid %s on %s, balance %s -> %s",
            record.row_number,
            account.account_number,
            amount,
            format_payment_date(payment_date),
            before,
            after,
        )
        return outcome

    # ── Private helpers ──────────────────────────────────────────────

    def _update_balance(
        self, account: Account, amount: Decimal, payment_date: date
    ) -> tuple[Decimal, Decimal]:
        """Compare-and-swap the balance via the account's version column."""
        attempts = max(1, self.config.balance_update_max_retries)
        account_id = account.id
        account_number = account.account_number
        for attempt in range(1, attempts + 1):
            before = Decimal(account.current_balance).quantize(CENTS)
            after = apply_to_balance(before, amount)
            account.current_balance = after
            account.last_payment_amount = amount
            account.last_payment_date = payment_date
            try:
                self.db.commit()
                return before, after
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    "Version conflict on %s (attempt %d/%d)",
                    account_number,
                    attempt,
                    attempts,
                )
                refreshed = self.db.get(Account, account_id, populate_existing=True)
                if refreshed is None:
                    raise
                account = refreshed
        raise ConcurrentUpdateError(account_number, attempts)

    def _append_history(
        self,
        account: Account,
        record: PaymentRecord,
        outcome: ReconciliationOutcome,
        batch_id: Optional[uuid.UUID],
    ) -> bool:
        entry = PaymentHistoryEntry(
            id=uuid.uuid4(),
            account_id=account.id,
            batch_id=batch_id,
            row_number=record.row_number,
            amount=outcome.amount,
            payment_date=outcome.payment_date,
            payment_method=PAYMENT_METHOD,
            reference_number=f"IMPORT-{account.account_number}",
            balance_before=outcome.balance_before,
            balance_after=outcome.balance_after,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Balance for %s updated but payment history insert failed",
                account.account_number,
            )
            return False
        return True

    def _settle_arrangements(
        self,
        account: Account,
        amount: Decimal,
        payment_date: date,
        batch_id: Optional[uuid.UUID],
    ) -> list[uuid.UUID]:
        """Settle covered arrangements; failures are logged, not raised.

        The payment is already committed by this point, so the record
        still counts as applied.
        """
        account_number = account.account_number
        try:
            return settle_for_payment(
                self.db,
                account,
                amount,
                payment_date,
                batch_id=batch_id,
                notifier=self.notifier,
            )
        except Exception:
            self.db.rollback()
            logger.exception("Auto-settle failed for %s", account_number)
            return []

    def _record_payment_activity(
        self,
        account: Account,
        outcome: ReconciliationOutcome,
        batch_id: Optional[uuid.UUID],
        row_number: int,
    ) -> None:
        event = ActivityEvent(
            activity_type=PAYMENT_RECEIVED,
            account_id=account.id,
            description=(
                f"Payment of {outcome.amount} received via {PAYMENT_METHOD} "
                f"on {format_payment_date(outcome.payment_date)}"
            ),
            amount=outcome.amount,
            batch_id=batch_id,
            metadata={
                "row_number": row_number,
                "balance_before": str(outcome.balance_before),
                "balance_after": str(outcome.balance_after),
                "amount_defaulted": outcome.amount_defaulted,
            },
        )
        record_activity(self.db, event)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Could not record payment activity for %s", account.account_number
            )
            return
        publish_quietly(self.notifier, event)
