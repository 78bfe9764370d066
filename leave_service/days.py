"""
Calendar-day helpers shared by validation, balance accounting and stats.

All arithmetic is done on ``datetime.date`` values so that time of day can
never shift a count by one.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from dateutil import parser
from dateutil.parser import ParserError

from leave_service.errors import ValidationError


def inclusive_days(start: date, end: date) -> int:
    """
    Number of calendar days spanned by ``start``..``end``, both ends included.

    Only meaningful for ``start <= end``; callers validate the range first.

    >>> inclusive_days(date(2025, 6, 10), date(2025, 6, 12))
    3
    """
    return (end - start).days + 1


# dateutil fills missing fields from ``default``; parsing against two defaults
# that differ in year, month and day exposes any field the input left out.
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))


def parse_date(value: date | datetime | str) -> date:
    """
    Normalize user input to a calendar date.

    Datetimes are truncated to their own calendar day; strings are parsed with
    dateutil (ISO ``YYYY-MM-DD`` is the documented format) and must spell out
    year, month and day. Nothing is filled in from the host clock.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date format")
    try:
        first, second = (parser.parse(value.strip(), default=d).date() for d in _FILL_DEFAULTS)
    except (ParserError, ValueError, OverflowError) as e:
        raise ValidationError("Invalid date format") from e
    if first != second:
        raise ValidationError("Invalid date format")
    return first


def today_in(now: datetime, tz_name: str = "UTC") -> date:
    """Calendar day of ``now`` in the named timezone. Naive values are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(ZoneInfo(tz_name)).date()
