"""SQLAlchemy ORM models for the persisted ledger snapshot"""

from sqlalchemy import Column, DateTime, Integer, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class LedgerSnapshotRecord(Base):
    """One JSON document per ledger, overwritten on every save"""

    __tablename__ = "ledger_snapshot"

    id = Column(Text, primary_key=True)
    document = Column(JSON, nullable=False)
    revision = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
