"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone
from typing import Union

from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, str]

END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    """Current time in the storage representation"""
    return to_storage_datetime(datetime.now(timezone.utc))


def to_storage_datetime(value: DateLike) -> datetime:
    """
    Normalize a date, datetime or ISO-8601 string to the storage representation.

    Stored datetimes are naive UTC with millisecond precision. Aware values are
    converted to UTC first; plain dates become midnight.

    Raises:
        ValueError: If a string cannot be parsed as ISO-8601
        TypeError: For any other input type
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.replace(microsecond=(value.microsecond // 1000) * 1000)

    if isinstance(value, date):
        return datetime.combine(value, time.min)

    raise TypeError(f"Unsupported date value: {value!r}")


def end_of_day(value: DateLike) -> datetime:
    """Last storable instant of the day (23:59:59.999)"""
    return datetime.combine(to_storage_datetime(value).date(), END_OF_DAY)


def add_months(value: datetime, months: int = 1) -> datetime:
    """Add calendar months, clamping to the last day of shorter months"""
    return value + relativedelta(months=months)
