"""SQLAlchemy models for the Ledgerline payment reconciler."""

from app.models.account import Account
from app.models.activity import AccountActivity
from app.models.arrangement import Arrangement
from app.models.payment_file import FileBatch
from app.models.payment_history import PaymentHistoryEntry

__all__ = [
    "Account",
    "AccountActivity",
    "Arrangement",
    "FileBatch",
    "PaymentHistoryEntry",
]
