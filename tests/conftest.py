"""Shared test fixtures for the Ledgerline reconciler tests.

Uses a SQLite file database so tests run without PostgreSQL.
"""

from __future__ import annotations

import os
import uuid
from decimal import Decimal

# DATABASE_URL must be set before anything from app is imported: the
# module-level ``engine`` in app.core.database is built at import time.
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.database import Base, get_db
from app.main import app
from app.models.account import Account
from app.services.notifications import get_notifier

from tests.helpers import TEST_DATABASE_URL, RecordingNotifier, make_config

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config() -> Settings:
    return make_config()


@pytest.fixture
def make_account(db_session):
    """Factory that inserts an account and returns it."""

    def _make(account_number: str, balance: str = "1000.00", **fields) -> Account:
        account = Account(
            id=uuid.uuid4(),
            account_number=account_number,
            current_balance=Decimal(balance),
            original_amount=Decimal(balance),
            **fields,
        )
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """FastAPI test client with overridden DB and notifier dependencies."""

    def override_get_db():
        try:
            yield db_session
        finally:
            # Requests share one session; reload state written elsewhere.
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
