"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Always store datetimes in DB as UTC (use to_utc())
- Calendar-day decisions use one explicit timezone, never the server locale
- Never mix naive and aware datetimes: naive input is rejected
"""

import logging
from datetime import datetime, date, time
from typing import Union
from zoneinfo import ZoneInfo

from schoolhub.exceptions import ValidationError

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def as_zoneinfo(tz: Union[str, ZoneInfo]) -> ZoneInfo:
    """Accept either an IANA name or a ZoneInfo"""
    return tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Only the HTTP boundary calls this; everything below receives `now`.
    """
    return datetime.now(UTC)


def ensure_aware(dt: datetime, field: str = "timestamp") -> datetime:
    """
    Reject naive datetimes

    Raises:
        ValidationError: If dt has no timezone
    """
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValidationError(
            message="Timestamp must be timezone-aware",
            field=field,
            value=dt,
        )
    return dt


def to_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to UTC for database storage"""
    return ensure_aware(dt).astimezone(UTC)


def local_date(dt: datetime, tz: Union[str, ZoneInfo]) -> date:
    """Calendar date of an instant as seen in the given timezone"""
    return ensure_aware(dt).astimezone(as_zoneinfo(tz)).date()


def get_day_start_utc(dt: datetime, tz: Union[str, ZoneInfo]) -> datetime:
    """
    Start of the calendar day containing dt, in UTC

    Args:
        dt: Any instant within the day
        tz: Timezone that defines day boundaries

    Returns:
        Datetime at local 00:00 converted to UTC
    """
    zone = as_zoneinfo(tz)
    day_start = datetime.combine(local_date(dt, zone), time.min).replace(tzinfo=zone)
    return day_start.astimezone(UTC)
