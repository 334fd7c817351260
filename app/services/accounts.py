"""Account lookups shared by the ledger, arrangements, and API."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.models.account import Account
from app.services.ingestion.normalizer import normalize_account_number

logger = get_logger(__name__)


class AccountNotFoundError(LookupError):
    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account not found: {account_number}")


class DuplicateAccountError(ValueError):
    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account already exists: {account_number}")


def find_account(db: Session, account_number: str) -> Optional[Account]:
    """Look up an account by business number (same normalization as uploads)."""
    key = normalize_account_number(account_number)
    stmt = select(Account).where(Account.account_number == key)
    return db.execute(stmt).scalar_one_or_none()


def get_account(db: Session, account_number: str) -> Account:
    """Like ``find_account`` but raises ``AccountNotFoundError``."""
    account = find_account(db, account_number)
    if account is None:
        raise AccountNotFoundError(normalize_account_number(account_number))
    return account


def create_account(
    db: Session,
    account_number: str,
    current_balance: Decimal,
    holder_name: Optional[str] = None,
    status: Optional[str] = None,
    cell_number: Optional[str] = None,
    email_address: Optional[str] = None,
) -> Account:
    """Insert a new account and commit.

    Raises:
        DuplicateAccountError: If the account number is already taken.
    """
    key = normalize_account_number(account_number)
    if find_account(db, key) is not None:
        raise DuplicateAccountError(key)

    balance = Decimal(current_balance).quantize(Decimal("0.01"))
    account = Account(
        id=uuid.uuid4(),
        account_number=key,
        holder_name=holder_name,
        status=status,
        cell_number=cell_number,
        email_address=email_address,
        current_balance=balance,
        original_amount=balance,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateAccountError(key) from exc
    db.refresh(account)
    logger.info("Created account %s with balance %s", key, balance)
    return account
