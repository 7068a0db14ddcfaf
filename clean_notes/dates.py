from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
ONE_DAY = timedelta(days=1)


def extract_date(identifier: str) -> date | None:
    """Return the first YYYY-MM-DD date embedded in `identifier`.

    Invalid calendar values (month 13, Feb 30, ...) count as no date.
    """

    m = DATE_RE.search(identifier or "")
    if not m:
        return None
    try:
        return datetime.strptime(m.group(0), "%Y-%m-%d").date()
    except ValueError:
        return None


def _as_datetime(now: datetime | date) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time.min)


def age_in_days(d: date, now: datetime | date) -> float:
    """Elapsed days from midnight of `d` to `now`, fractional."""
    now_dt = _as_datetime(now)
    start = datetime.combine(d, time.min, tzinfo=now_dt.tzinfo)
    return (now_dt - start) / ONE_DAY


def is_eligible(identifier: str, threshold_days: int, now: datetime | date) -> bool:
    d = extract_date(identifier)
    if d is None:
        return False
    return age_in_days(d, now) >= threshold_days
