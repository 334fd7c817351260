"""Arrangement model: promise-to-pay and settlement commitments."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.account import Account

ARRANGEMENT_PENDING = "pending"
ARRANGEMENT_PAID = "paid"
ARRANGEMENT_DEFAULTED = "defaulted"


class Arrangement(Base):
    """A debtor's promise to pay ``amount`` on or before ``promised_date``.

    Status only moves forward: pending -> paid on confirmation, or
    pending -> defaulted when the daily sweep finds the promised date
    has passed.  Terminal rows are never edited; a corrected promise is
    a new arrangement.
    """

    __tablename__ = "arrangements"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    arrangement_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="ptp",
        comment="ptp | settlement",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )
    promised_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    payment_method: Mapped[Optional[str]] = mapped_column(
        String(30),
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ARRANGEMENT_PENDING,
        comment="pending | paid | defaulted",
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(100),
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
    )

    # -- Relationships --
    account: Mapped[Account] = relationship(
        "Account",
        back_populates="arrangements",
        lazy="joined",
    )

    __table_args__ = (
        Index("ix_arrangement_status_promised", "status", "promised_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Arrangement(id={self.id!r}, status={self.status!r}, "
            f"promised_date={self.promised_date})>"
        )
