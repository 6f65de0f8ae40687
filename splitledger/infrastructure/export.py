"""JSON and CSV export of the ledger"""

import csv
import io
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Optional

from splitledger.domain.models import LedgerSnapshot
from splitledger.infrastructure.storage.serialization import snapshot_to_document
from splitledger.utils.date_utils import in_range

CSV_HEADER = ["Date", "Title", "Amount", "Currency", "Category", "Paid By", "Participants", "Settled"]


def restrict_to_range(snapshot: LedgerSnapshot, start: Optional[date], end: Optional[date]) -> LedgerSnapshot:
    """Keep dated records (expenses, payments, settlements, activity) inside [start, end]"""
    return replace(
        snapshot,
        expenses=tuple(e for e in snapshot.expenses if in_range(e.date, start, end)),
        payments=tuple(p for p in snapshot.payments if in_range(p.created_at, start, end)),
        settlements=tuple(s for s in snapshot.settlements if in_range(s.created_at, start, end)),
        activity_feed=tuple(a for a in snapshot.activity_feed if in_range(a.timestamp, start, end)),
    )


def export_json(
    snapshot: LedgerSnapshot,
    start: Optional[date] = None,
    end: Optional[date] = None,
    exported_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Snapshot document for the date range, stamped with exportedAt"""
    document = snapshot_to_document(restrict_to_range(snapshot, start, end))
    document["exportedAt"] = (exported_at or datetime.utcnow()).isoformat()
    return document


def export_csv(
    snapshot: LedgerSnapshot,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> str:
    """
    One row per expense in the date range.

    Payer and participant names are joined with ';'; unknown ids render as
    "Unknown User" and categories fall back to their raw value.
    """
    names = {u.id: u.name for u in snapshot.users}
    categories = {c.id: c.name for c in snapshot.categories}

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)

    for e in snapshot.expenses:
        if not in_range(e.date, start, end):
            continue
        writer.writerow([
            e.date.isoformat(),
            e.title,
            f"{e.total_amount:.2f}",
            e.currency,
            categories.get(e.category, e.category or ""),
            ";".join(names.get(uid, "Unknown User") for uid in e.paid_by),
            ";".join(names.get(p.user_id, "Unknown User") for p in e.participants if p.in_split),
            "Yes" if e.settled else "No",
        ])

    return buffer.getvalue()
