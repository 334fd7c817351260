"""Pydantic schemas for arrangements and the overdue sweep."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ArrangementCreate(BaseModel):
    """Schema for recording a promise-to-pay or settlement offer."""

    account_number: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    promised_date: date
    arrangement_type: Literal["ptp", "settlement"] = "ptp"
    payment_method: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)


class ArrangementResponse(BaseModel):
    """Schema returned when reading an arrangement."""

    id: UUID
    account_id: UUID
    arrangement_type: str
    amount: Decimal
    promised_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    status: str = Field(..., description="pending | paid | defaulted")
    created_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MarkPaidRequest(BaseModel):
    confirmed_by: str = Field("System", max_length=100)


class SweepRequest(BaseModel):
    today: Optional[date] = Field(
        None, description="Reference date; defaults to the server's current date"
    )


class SweepResponse(BaseModel):
    transitioned: int
    failed: int
    errors: list[str] = Field(default_factory=list)
