"""Pydantic schemas for accounts, payment history, and activities."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AccountBase(BaseModel):
    """Shared fields for accounts."""

    account_number: str = Field(..., min_length=1, max_length=50)
    holder_name: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = Field(None, max_length=30)
    cell_number: Optional[str] = Field(None, max_length=30)
    email_address: Optional[str] = Field(None, max_length=255)


class AccountCreate(AccountBase):
    """Schema for opening a new account."""

    current_balance: Decimal = Field(
        Decimal("0.00"),
        ge=0,
        max_digits=15,
        decimal_places=2,
    )


class AccountResponse(AccountBase):
    """Schema returned when reading an account."""

    id: UUID
    current_balance: Decimal
    original_amount: Optional[Decimal] = None
    last_payment_amount: Optional[Decimal] = None
    last_payment_date: Optional[date] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentHistoryResponse(BaseModel):
    id: UUID
    batch_id: Optional[UUID] = None
    row_number: Optional[int] = None
    amount: Decimal
    payment_date: date
    payment_method: str
    reference_number: Optional[str] = None
    balance_before: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityResponse(BaseModel):
    id: UUID
    activity_type: str
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    batch_id: Optional[UUID] = None
    arrangement_id: Optional[UUID] = None
    created_by_name: str
    metadata_json: Optional[dict[str, Any]] = Field(None, serialization_alias="metadata")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
