"""Ledger store - the single writer holding the authoritative snapshot"""

import logging
import threading
import time
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from splitledger.domain import commands as cmd
from splitledger.domain.exceptions import PersistenceError, ValidationError
from splitledger.domain.models import LedgerSnapshot, SplitType
from splitledger.domain.reducer import LedgerReducer
from splitledger.infrastructure.observability.logging import log_command
from splitledger.infrastructure.observability.metrics import (
    persistence_failures_counter,
    persistence_latency_histogram,
    record_command,
    split_validation_failures_counter,
)
from splitledger.infrastructure.storage.repositories import SnapshotRepository


class LedgerStore:
    """
    In-memory snapshot plus its transient state (loading flag, last error, sync status).

    Commands are applied one at a time under a lock; readers just take the
    current snapshot reference, which is never mutated. Saving happens after a
    command completes and never rolls the in-memory snapshot back.

    Every applied command bumps an in-memory revision. Saves are serialised
    under their own lock and only ever write a revision newer than the last
    one written, so an older snapshot can never overwrite a newer one.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        snapshot_id: str,
        reducer: Optional[LedgerReducer] = None,
        initial: Optional[LedgerSnapshot] = None,
    ):
        self.session_factory = session_factory
        self.snapshot_id = snapshot_id
        self.reducer = reducer or LedgerReducer()
        self._snapshot = initial or LedgerSnapshot()
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._revision = 0
        self._saved_revision = -1  # nothing written yet

        self.is_loading = False
        self.last_error: Optional[str] = None
        self.sync_status = "idle"  # idle | dirty | synced | error

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    def dispatch(self, command: cmd.Command) -> LedgerSnapshot:
        """
        Apply a command and make the result the current snapshot.

        Raises:
            ValidationError: Command rejected; the current snapshot is unchanged
        """
        start_time = time.time()
        with self._lock:
            try:
                new_snapshot = self.reducer.apply(self._snapshot, command)
            except ValidationError as e:
                record_command(command.kind, applied=False)
                if isinstance(command, (cmd.AddExpense, cmd.UpdateExpense)):
                    split_type = command.expense.split_type
                    policy = split_type.value if isinstance(split_type, SplitType) else str(split_type)
                    split_validation_failures_counter.labels(policy=policy).inc()
                log_command(command.kind, "rejected", (time.time() - start_time) * 1000, error=str(e))
                raise
            self._snapshot = new_snapshot
            self._revision += 1
            self.sync_status = "dirty"

        record_command(command.kind, applied=True)
        log_command(command.kind, "applied", (time.time() - start_time) * 1000)
        return new_snapshot

    def load(self) -> LedgerSnapshot:
        """
        Replace the in-memory snapshot with the stored one, if any.

        A failed read is reported through last_error and leaves the current
        snapshot in place.
        """
        self.is_loading = True
        db = self.session_factory()
        try:
            stored = SnapshotRepository(db).load(self.snapshot_id)
            if stored is not None:
                with self._lock:
                    self._snapshot = stored
                    self._saved_revision = self._revision
            self.sync_status = "synced"
            self.last_error = None
        except PersistenceError as e:
            persistence_failures_counter.labels(operation="load").inc()
            self.last_error = str(e)
            self.sync_status = "error"
            logging.error(f"Snapshot load failed: {e}", extra={"snapshot_id": self.snapshot_id})
        finally:
            db.close()
            self.is_loading = False
        return self._snapshot

    def persist(self) -> bool:
        """
        Save the current snapshot. Fire-and-forget: failures are recorded, never raised.

        The snapshot is taken after the save lock is acquired, so concurrent
        saves write in revision order. A save whose revision was already
        written is skipped.

        Returns:
            True when the current revision is stored
        """
        with self._save_lock:
            with self._lock:
                snapshot = self._snapshot
                revision = self._revision

            if revision <= self._saved_revision:
                logging.debug(
                    "Snapshot revision already saved",
                    extra={"snapshot_id": self.snapshot_id, "revision": revision},
                )
                return True

            db = self.session_factory()
            try:
                with persistence_latency_histogram.time():
                    SnapshotRepository(db).save(self.snapshot_id, snapshot)
                    try:
                        db.commit()
                    except SQLAlchemyError as e:
                        raise PersistenceError(f"Failed to commit snapshot {self.snapshot_id}: {e}") from e
            except PersistenceError as e:
                db.rollback()
                persistence_failures_counter.labels(operation="save").inc()
                self.last_error = str(e)
                self.sync_status = "error"
                logging.error(f"Snapshot save failed: {e}", extra={"snapshot_id": self.snapshot_id})
                return False
            finally:
                db.close()

            self._saved_revision = revision
            self.last_error = None
            with self._lock:
                # A command applied during the write leaves the store dirty
                self.sync_status = "synced" if revision == self._revision else "dirty"
            return True
