"""Account activity model: audit events emitted by the ledger and sweep."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class AccountActivity(Base):
    """A single audit entry on an account's timeline.

    Written for applied payments and every arrangement transition, and
    handed to the notifier so SMS/email collaborators can react.
    """

    __tablename__ = "account_activities"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    activity_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="payment_received | ptp_created | ptp_paid | ptp_defaulted",
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
    )
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("payment_files.id"),
        nullable=True,
    )
    arrangement_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("arrangements.id"),
        nullable=True,
    )
    created_by_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="System",
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

    def __repr__(self) -> str:
        return (
            f"<AccountActivity(activity_type={self.activity_type!r}, "
            f"account_id={self.account_id!r})>"
        )
