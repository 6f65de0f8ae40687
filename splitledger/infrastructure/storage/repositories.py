"""Data access layer for persisted ledger snapshots"""

from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from splitledger.domain.exceptions import PersistenceError, ValidationError
from splitledger.domain.models import LedgerSnapshot
from splitledger.infrastructure.storage.models import LedgerSnapshotRecord
from splitledger.infrastructure.storage.serialization import snapshot_from_document, snapshot_to_document


class SnapshotRepository:
    """Repository for the ledger snapshot document"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, snapshot_id: str, snapshot: LedgerSnapshot) -> LedgerSnapshotRecord:
        """
        Insert or overwrite the snapshot document.

        Raises:
            PersistenceError: Database write failed
        """
        document = snapshot_to_document(snapshot)
        try:
            record = self.db.get(LedgerSnapshotRecord, snapshot_id)
            if record is None:
                record = LedgerSnapshotRecord(id=snapshot_id, document=document, revision=1)
                self.db.add(record)
            else:
                record.document = document
                record.revision = record.revision + 1
            self.db.flush()
            return record
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save snapshot {snapshot_id}: {e}") from e

    def load(self, snapshot_id: str) -> Optional[LedgerSnapshot]:
        """
        Fetch and decode the snapshot document, None when nothing was saved yet.

        Raises:
            PersistenceError: Database read failed or the document is malformed
        """
        try:
            record = self.db.get(LedgerSnapshotRecord, snapshot_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load snapshot {snapshot_id}: {e}") from e

        if record is None:
            return None

        try:
            return snapshot_from_document(record.document)
        except (KeyError, ValueError, TypeError, ValidationError) as e:
            raise PersistenceError(f"Stored snapshot {snapshot_id} is malformed: {e}") from e
