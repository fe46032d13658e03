from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse an ISO-8601 date (YYYY-MM-DD) into a datetime.date."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10 and text[10] in "T ":
            # datetime string, keep the date part
            text = text[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    return None


def year_start(d: date) -> date:
    return date(d.year, 1, 1)


def day_before(d: date) -> date:
    return d - timedelta(days=1)
