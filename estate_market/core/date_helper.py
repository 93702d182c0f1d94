import math
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Some drivers (sqlite) hand back naive datetimes; treat those as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_months_between(start: datetime, end: datetime) -> int:
    delta = relativedelta(as_utc(end), as_utc(start))
    return delta.years * 12 + delta.months


def stay_days(start: datetime, end: datetime) -> int:
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return math.ceil(seconds / 86400)


def year_bounds(year: int) -> tuple[datetime, datetime]:
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    return start, start + relativedelta(years=1)
