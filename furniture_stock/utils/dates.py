# furniture_stock/utils/dates.py
from datetime import date, datetime, time
from typing import Optional, Union

from furniture_stock.exceptions import InvalidInputError
from furniture_stock.utils.clock import to_naive_utc

DateInput = Union[str, date, datetime, None]


def parse_date_bound(value: DateInput, *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Turn a query-string date filter into a naive UTC datetime bound.

    Missing or blank input means "no bound". A date-only value used as an
    upper bound covers the whole day (through 23:59:59.999999). Anything
    that is not ISO-8601 is rejected.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min)

    s = str(value).strip()
    if not s:
        return None

    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        raise InvalidInputError(f"Bad date format: {value}")

    if end_of_day and _is_date_only(s):
        return datetime.combine(parsed.date(), time.max)
    return to_naive_utc(parsed)


def _is_date_only(s: str) -> bool:
    # YYYY-MM-DD, YYYYMMDD, week dates: anything date.fromisoformat takes has no time part
    try:
        date.fromisoformat(s)
    except ValueError:
        return False
    return True


def day_key(value) -> str:
    """YYYY-MM-DD for a datetime/date or a date string coming back from SQL."""
    if isinstance(value, datetime):
        return to_naive_utc(value).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def isoformat_or_none(value: DateInput) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    s = str(value).strip()
    return s or None
