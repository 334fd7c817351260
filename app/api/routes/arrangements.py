"""Arrangement endpoints: promises to pay, confirmations, and the sweep."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.logging import get_logger
from app.models.account import Account
from app.models.arrangement import Arrangement
from app.schemas.arrangement import (
    ArrangementCreate,
    ArrangementResponse,
    MarkPaidRequest,
    SweepRequest,
    SweepResponse,
)
from app.services.accounts import AccountNotFoundError
from app.services.arrangements.state_machine import (
    ArrangementNotFoundError,
    InvalidArrangementError,
    InvalidTransitionError,
    create_arrangement,
    mark_paid,
)
from app.services.arrangements.sweep import sweep_overdue_arrangements
from app.services.ingestion.normalizer import normalize_account_number
from app.services.notifications import Notifier, get_notifier

logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=ArrangementResponse, status_code=201)
def record_arrangement(
    body: ArrangementCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> Arrangement:
    """Record a promise-to-pay (or settlement offer) for an account."""
    try:
        return create_arrangement(
            db,
            account_number=body.account_number,
            amount=body.amount,
            promised_date=body.promised_date,
            arrangement_type=body.arrangement_type,
            payment_method=body.payment_method,
            notes=body.notes,
            created_by=body.created_by,
            notifier=notifier,
        )
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidArrangementError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("", response_model=List[ArrangementResponse])
def list_arrangements(
    status: Optional[str] = Query(None, description="pending | paid | defaulted"),
    account_number: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Arrangement]:
    """List arrangements, soonest promised date first."""
    query = db.query(Arrangement)
    if status:
        query = query.filter(Arrangement.status == status)
    if account_number:
        query = query.join(Account, Arrangement.account_id == Account.id).filter(
            Account.account_number == normalize_account_number(account_number)
        )
    return query.order_by(Arrangement.promised_date.asc()).limit(limit).all()


@router.post("/sweep", response_model=SweepResponse)
def run_sweep(
    body: Optional[SweepRequest] = None,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> SweepResponse:
    """Default every pending arrangement whose promised date has passed."""
    today = body.today if body else None
    result = sweep_overdue_arrangements(db, today=today, notifier=notifier)
    return SweepResponse(
        transitioned=result.transitioned, failed=result.failed, errors=result.errors
    )


@router.post("/{arrangement_id}/paid", response_model=ArrangementResponse)
def confirm_arrangement_paid(
    arrangement_id: UUID,
    body: Optional[MarkPaidRequest] = None,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> Arrangement:
    """Confirm payment of a pending arrangement."""
    confirmed_by = body.confirmed_by if body else "System"
    try:
        return mark_paid(db, arrangement_id, confirmed_by=confirmed_by, notifier=notifier)
    except ArrangementNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
