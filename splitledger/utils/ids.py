"""Identifier generation"""

import uuid


def new_id(prefix: str) -> str:
    """Prefixed random id, e.g. expense-3f2b..."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
