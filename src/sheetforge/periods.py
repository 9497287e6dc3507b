"""Bucket label generation for time columns.

a time column needs to know every bucket between two instants so empty
buckets can show up as zero rows. dateutil's rrule does the calendar math -
month and year steps are not fixed-length so timedelta arithmetic doesn't cut it.
"""

from datetime import datetime
from enum import Enum

from dateutil import rrule


class TimeGranularity(str, Enum):
    """Supported time granularities.

    the value doubles as the column name a time column is registered under,
    so a definition asks for "month" rather than "created_at by month".
    """

    YEAR = "year"
    MONTH = "month"
    DATE = "date"
    HOUR = "hour"
    MINUTE = "minute"
    SECOND = "second"

    @property
    def pattern(self) -> str:
        """strftime pattern - duckdb and python agree on these tokens."""
        return _PATTERNS[self]

    @property
    def frequency(self) -> int:
        return _FREQUENCIES[self]

    def floor(self, value: datetime) -> datetime:
        """Truncate a datetime to the start of its bucket."""
        if self is TimeGranularity.YEAR:
            return value.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        if self is TimeGranularity.MONTH:
            return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if self is TimeGranularity.DATE:
            return value.replace(hour=0, minute=0, second=0, microsecond=0)
        if self is TimeGranularity.HOUR:
            return value.replace(minute=0, second=0, microsecond=0)
        if self is TimeGranularity.MINUTE:
            return value.replace(second=0, microsecond=0)
        return value.replace(microsecond=0)


_PATTERNS = {
    TimeGranularity.YEAR: "%Y",
    TimeGranularity.MONTH: "%Y-%m",
    TimeGranularity.DATE: "%Y-%m-%d",
    TimeGranularity.HOUR: "%Y-%m-%d %H:00",
    TimeGranularity.MINUTE: "%Y-%m-%d %H:%M",
    TimeGranularity.SECOND: "%Y-%m-%d %H:%M:%S",
}

_FREQUENCIES = {
    TimeGranularity.YEAR: rrule.YEARLY,
    TimeGranularity.MONTH: rrule.MONTHLY,
    TimeGranularity.DATE: rrule.DAILY,
    TimeGranularity.HOUR: rrule.HOURLY,
    TimeGranularity.MINUTE: rrule.MINUTELY,
    TimeGranularity.SECOND: rrule.SECONDLY,
}


def bucket_labels(start: datetime, end: datetime, granularity: TimeGranularity) -> list[str]:
    """Every bucket label touched by [start, end], in order.

    start is floored first - stepping monthly from jan 31 would otherwise
    skip february entirely.
    """
    # rrule refuses to mix aware and naive datetimes, and so does "<"
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise ValueError("start and end must both be naive or both be timezone-aware")
    if end < start:
        return []

    first = granularity.floor(start)
    return [
        bucket.strftime(granularity.pattern)
        for bucket in rrule.rrule(granularity.frequency, dtstart=first, until=end)
    ]
