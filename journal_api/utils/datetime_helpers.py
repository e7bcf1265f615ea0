"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Journal dates are YYYY-MM-DD strings; being fixed-width and zero-padded
  they compare correctly as strings
- Record timestamps are ISO-8601 UTC strings with millisecond precision
- "Today" for a user always comes from a DateProvider, never from
  datetime.now() inside domain code
"""

import logging
from datetime import datetime, date, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_TIMEZONE = "UTC"


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format an aware datetime as e.g. 2024-05-01T12:30:00.000Z"""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def current_timestamp() -> str:
    return format_timestamp(now_utc())


def validate_date_string(value: str) -> str:
    """
    Check a journal date string

    Raises:
        ValueError: If value is not a real calendar date in YYYY-MM-DD form
    """
    try:
        parsed = datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD") from e
    if parsed.isoformat() != value:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD")
    return value


def to_date_string(value: Union[str, date, datetime]) -> str:
    """
    Normalize a date, datetime or ISO string to YYYY-MM-DD

    Aware datetimes (and ISO strings with an offset or Z suffix) are
    converted to UTC first; naive ones are taken as-is.

    Raises:
        ValueError: If value cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value.isoformat()
    else:
        text = value.strip()
        if len(text) == 10:
            return validate_date_string(text)
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD or ISO-8601") from e

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date().isoformat()


def previous_date(date_str: str) -> str:
    """The calendar day before date_str"""
    day = datetime.strptime(validate_date_string(date_str), DATE_FORMAT).date()
    return (day - timedelta(days=1)).isoformat()


def minutes_since_midnight(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


class DateProvider:
    """
    Supplies "now" and "today" for a user.

    The default implementation uses one configured timezone for everybody.
    Per-user local dates can be layered in by overriding now() without
    touching the services that consume it.
    """

    def __init__(self, tz_name: str = DEFAULT_TIMEZONE):
        self.tz_name = tz_name
        self._tz = ZoneInfo(tz_name)

    def now(self, user_id: str) -> datetime:
        return datetime.now(self._tz)

    def today(self, user_id: str) -> str:
        return self.now(user_id).date().isoformat()


class FixedDateProvider(DateProvider):
    """DateProvider frozen at one moment"""

    def __init__(self, moment: datetime):
        super().__init__(moment.tzinfo.key if isinstance(moment.tzinfo, ZoneInfo) else DEFAULT_TIMEZONE)
        self.moment = moment

    def now(self, user_id: str) -> datetime:
        return self.moment
