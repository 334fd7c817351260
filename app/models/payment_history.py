"""Payment history model: append-only audit trail of applied payments."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.account import Account


class PaymentHistoryEntry(Base):
    """One payment applied to an account.

    Rows are inserted by the ledger reconciler and never updated; the
    account balance itself keeps no history, so this table is the only
    record of how a balance got where it is.
    """

    __tablename__ = "payment_history"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("payment_files.id"),
        nullable=True,
        index=True,
    )
    row_number: Mapped[Optional[int]] = mapped_column(
        Integer,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )
    payment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    payment_method: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="File Import",
    )
    reference_number: Mapped[Optional[str]] = mapped_column(
        String(100),
    )
    balance_before: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
    )
    balance_after: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
    )

    # -- Relationships --
    account: Mapped[Account] = relationship(
        "Account",
        back_populates="payments",
        lazy="joined",
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentHistoryEntry(account_id={self.account_id!r}, "
            f"amount={self.amount}, payment_date={self.payment_date})>"
        )
