"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Optional, Union


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date"""
    return date.fromisoformat(value.strip()[:10])


def in_range(value: Union[date, datetime, None], start: Optional[date], end: Optional[date]) -> bool:
    """Inclusive range check; open bounds match everything, missing values only match an unbounded range"""
    if value is None:
        return start is None and end is None
    day = value.date() if isinstance(value, datetime) else value
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True
