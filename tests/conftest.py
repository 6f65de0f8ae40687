"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from splitledger.api.dependencies import get_ledger_store
from splitledger.api.main import create_app
from splitledger.domain.models import Expense, LedgerSettings, LedgerSnapshot, SplitDeclaration, User
from splitledger.domain.splits import build_expense
from splitledger.infrastructure.storage.models import Base
from splitledger.infrastructure.storage.session import build_engine
from splitledger.infrastructure.store import LedgerStore


# Test database: one shared in-memory connection
TEST_DATABASE_URL = "sqlite://"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2026, 10, 1, 12, 0, 0)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Create test tables and hand out sessions bound to them"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users() -> tuple:
    return (
        User(id="alice", name="Alice", email="alice@example.com", created_at=NOW),
        User(id="bob", name="Bob", email="bob@example.com", created_at=NOW),
        User(id="carol", name="Carol", email="carol@example.com", created_at=NOW),
        User(id="dave", name="Dave", email="dave@example.com", created_at=NOW),
    )


@pytest.fixture
def snapshot(users) -> LedgerSnapshot:
    """Ledger with four users, no expenses, no materiality floor"""
    return LedgerSnapshot(users=users, settings=LedgerSettings(auto_settle_threshold=0.0))


@pytest.fixture
def make_expense() -> Callable[..., Expense]:
    """
    Build a normalized expense.

    make_expense("e1", 90, ["alice", "bob", "carol"], paid_by=["alice"])
    Pass split values as a dict {user_id: value} for non-equal policies.
    """

    def _make(
        expense_id: str,
        amount: float,
        participants,
        paid_by,
        split_type: str = "equal",
        expense_date: date = date(2026, 10, 1),
        **extra,
    ) -> Expense:
        if isinstance(participants, dict):
            declarations = [
                SplitDeclaration(user_id=uid, split_value=value, owed_amount=value)
                for uid, value in participants.items()
            ]
        else:
            declarations = [SplitDeclaration(user_id=uid) for uid in participants]
        return build_expense(
            expense_id=expense_id,
            title=extra.pop("title", f"Expense {expense_id}"),
            base_amount=amount,
            declarations=declarations,
            paid_by=paid_by,
            split_type=split_type,
            expense_date=expense_date,
            now=NOW,
            **extra,
        )

    return _make


@pytest.fixture
def store(session_factory) -> LedgerStore:
    """Ledger store backed by the in-memory test database"""
    return LedgerStore(
        session_factory,
        "test-ledger",
        initial=LedgerSnapshot(settings=LedgerSettings(auto_settle_threshold=0.0)),
    )


@pytest.fixture
def client(store: LedgerStore) -> TestClient:
    """Create FastAPI test client wired to the test store"""
    app = create_app()
    app.dependency_overrides[get_ledger_store] = lambda: store
    return TestClient(app)
