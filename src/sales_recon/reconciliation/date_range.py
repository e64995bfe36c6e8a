"""Report date range parsing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import InvalidRangeError

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_TIMEZONE = "America/Bogota"


@dataclass(frozen=True)
class DateRange:
    """Closed interval of local calendar days with its UTC query bounds."""

    date_init: str
    date_end: str
    start_utc: datetime
    end_utc: datetime

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start_utc <= moment <= self.end_utc


def _parse_day(value: Optional[str], label: str) -> date:
    if not value or not str(value).strip():
        raise InvalidRangeError(f"{label} is required (format YYYY-MM-DD)")
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise InvalidRangeError(f"{label} must be a date in YYYY-MM-DD format, got {value!r}")


def parse_date_range(
    date_init: Optional[str],
    date_end: Optional[str],
    tz_name: str = DEFAULT_TIMEZONE,
) -> DateRange:
    """
    Parse report bounds into UTC instants.

    The start is the beginning of ``date_init`` and the end is the last
    microsecond of ``date_end``, both in the report time zone.

    Args:
        date_init: First day of the report (YYYY-MM-DD)
        date_end: Last day of the report (YYYY-MM-DD)
        tz_name: IANA time zone of the calendar days

    Returns:
        DateRange with UTC bounds

    Raises:
        InvalidRangeError: If a bound is missing, malformed or the range is inverted
    """
    first = _parse_day(date_init, "dateInit")
    last = _parse_day(date_end, "dateEnd")
    if last < first:
        raise InvalidRangeError(
            f"dateEnd ({date_end}) is before dateInit ({date_init})",
            date_init=date_init,
            date_end=date_end,
        )
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidRangeError(f"Unknown report time zone: {tz_name!r}")

    start = datetime.combine(first, time.min, tzinfo=tz)
    end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=tz) - timedelta(microseconds=1)
    return DateRange(
        date_init=first.strftime(DATE_FORMAT),
        date_end=last.strftime(DATE_FORMAT),
        start_utc=start.astimezone(timezone.utc),
        end_utc=end.astimezone(timezone.utc),
    )
