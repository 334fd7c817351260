"""Account endpoints: open accounts and read their ledger trail."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.logging import get_logger
from app.models.account import Account
from app.models.activity import AccountActivity
from app.models.payment_history import PaymentHistoryEntry
from app.schemas.account import (
    AccountCreate,
    AccountResponse,
    ActivityResponse,
    PaymentHistoryResponse,
)
from app.services.accounts import (
    AccountNotFoundError,
    DuplicateAccountError,
    create_account,
    get_account,
)

logger = get_logger(__name__)

router = APIRouter()


def _account_or_404(db: Session, account_number: str) -> Account:
    try:
        return get_account(db, account_number)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("", response_model=AccountResponse, status_code=201)
def open_account(
    body: AccountCreate,
    db: Session = Depends(get_db),
) -> Account:
    """Create an account that uploaded payments can be applied to."""
    try:
        return create_account(
            db,
            account_number=body.account_number,
            current_balance=body.current_balance,
            holder_name=body.holder_name,
            status=body.status,
            cell_number=body.cell_number,
            email_address=body.email_address,
        )
    except DuplicateAccountError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/{account_number}", response_model=AccountResponse)
def read_account(
    account_number: str,
    db: Session = Depends(get_db),
) -> Account:
    return _account_or_404(db, account_number)


@router.get("/{account_number}/payments", response_model=List[PaymentHistoryResponse])
def list_account_payments(
    account_number: str,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[PaymentHistoryEntry]:
    """Payment history for an account, newest first."""
    account = _account_or_404(db, account_number)
    return (
        db.query(PaymentHistoryEntry)
        .filter(PaymentHistoryEntry.account_id == account.id)
        .order_by(PaymentHistoryEntry.created_at.desc())
        .limit(limit)
        .all()
    )


@router.get("/{account_number}/activities", response_model=List[ActivityResponse])
def list_account_activities(
    account_number: str,
    activity_type: Optional[str] = Query(None, description="Filter by activity type"),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[AccountActivity]:
    """Activity timeline for an account, newest first."""
    account = _account_or_404(db, account_number)
    query = db.query(AccountActivity).filter(AccountActivity.account_id == account.id)
    if activity_type:
        query = query.filter(AccountActivity.activity_type == activity_type)
    return query.order_by(AccountActivity.created_at.desc()).limit(limit).all()
