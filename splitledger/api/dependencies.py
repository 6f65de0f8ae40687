"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache
from fastapi import Request

from splitledger.config import settings
from splitledger.domain.models import LedgerSettings, LedgerSnapshot
from splitledger.domain.reducer import LedgerReducer
from splitledger.infrastructure.storage.models import Base
from splitledger.infrastructure.storage.session import SessionLocal, engine
from splitledger.infrastructure.store import LedgerStore


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def build_reducer() -> LedgerReducer:
    return LedgerReducer(
        activity_limit=settings.activity_feed_limit,
        exact_tolerance=settings.exact_split_tolerance,
    )


def initial_snapshot() -> LedgerSnapshot:
    """Empty ledger seeded with the configured defaults"""
    return LedgerSnapshot(
        settings=LedgerSettings(
            default_currency=settings.default_currency,
            auto_settle_threshold=settings.auto_settle_threshold,
        )
    )


@lru_cache
def get_ledger_store() -> LedgerStore:
    """Provide the process-wide ledger store, loaded from storage on first use"""
    Base.metadata.create_all(bind=engine)
    store = LedgerStore(
        SessionLocal,
        settings.snapshot_id,
        reducer=build_reducer(),
        initial=initial_snapshot(),
    )
    store.load()
    return store
