"""Account model: the per-debtor ledger row payments are applied to."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.arrangement import Arrangement
    from app.models.payment_history import PaymentHistoryEntry


class Account(Base):
    """A collections account identified by its business account number.

    ``current_balance`` is only ever changed by the ledger reconciler.
    The ``version`` column gives optimistic concurrency: SQLAlchemy adds
    ``WHERE version = :old`` to every UPDATE and raises ``StaleDataError``
    if another writer got there first.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    account_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    holder_name: Mapped[Optional[str]] = mapped_column(
        String(255),
    )
    status: Mapped[Optional[str]] = mapped_column(
        String(30),
    )
    cell_number: Mapped[Optional[str]] = mapped_column(
        String(30),
    )
    email_address: Mapped[Optional[str]] = mapped_column(
        String(255),
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    original_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
    )
    last_payment_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
    )
    last_payment_date: Mapped[Optional[date]] = mapped_column(
        Date,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=func.now(),
    )

    # -- Relationships --
    payments: Mapped[list[PaymentHistoryEntry]] = relationship(
        "PaymentHistoryEntry",
        back_populates="account",
        lazy="select",
        order_by="PaymentHistoryEntry.created_at",
    )
    arrangements: Mapped[list[Arrangement]] = relationship(
        "Arrangement",
        back_populates="account",
        lazy="select",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Account(account_number={self.account_number!r}, "
            f"current_balance={self.current_balance})>"
        )
