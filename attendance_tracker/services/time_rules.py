"""
Time rules and validation service.
Handles working-hours classification and timezone conversions.
"""
from datetime import datetime, time, timedelta
from typing import NamedTuple, Optional
import pytz
from ..config import settings

ONTIME = "ONTIME"
LATE = "LATE"
ABSENT = "ABSENT"
EARLY_LEAVE = "EARLY_LEAVE"
STATUSES = (ONTIME, LATE, ABSENT, EARLY_LEAVE)


class TimeClassification(NamedTuple):
    within_window: bool
    status: str


def classify_time(now: datetime, start_hour: int, end_hour: int) -> TimeClassification:
    """
    Classify a wall-clock time against the working window [start_hour, end_hour].

    Only the hour and minute of ``now`` are considered, so callers pass a local
    time. Arrivals before the window are reported as ONTIME (outside window);
    anything after end_hour:00 is EARLY_LEAVE. LATE is never produced here.
    """
    current_minutes = now.hour * 60 + now.minute
    start_minutes = start_hour * 60
    end_minutes = end_hour * 60

    if current_minutes < start_minutes:
        return TimeClassification(False, ONTIME)
    if current_minutes > end_minutes:
        return TimeClassification(False, EARLY_LEAVE)
    return TimeClassification(True, ONTIME)


def utc_to_local(utc_datetime: datetime, timezone_str: Optional[str] = None) -> datetime:
    """
    Convert UTC datetime to local timezone.

    Args:
        utc_datetime: UTC datetime (timezone-aware, or naive meaning UTC)
        timezone_str: Timezone string (defaults to TZ_DEFAULT)

    Returns:
        Local datetime (timezone-aware)
    """
    tz = pytz.timezone(timezone_str or settings.tz_default)
    if utc_datetime.tzinfo is None:
        utc_dt = utc_datetime.replace(tzinfo=pytz.UTC)
    else:
        utc_dt = utc_datetime.astimezone(pytz.UTC)
    return utc_dt.astimezone(tz)


def local_to_utc(local_datetime: datetime, timezone_str: Optional[str] = None) -> datetime:
    """
    Convert local datetime to UTC.

    Args:
        local_datetime: Local datetime (naive is interpreted in the timezone)
        timezone_str: Timezone string (defaults to TZ_DEFAULT)

    Returns:
        UTC datetime (timezone-aware)
    """
    tz = pytz.timezone(timezone_str or settings.tz_default)
    if local_datetime.tzinfo is None:
        local_dt = tz.localize(local_datetime)
    else:
        local_dt = local_datetime.astimezone(tz)
    return local_dt.astimezone(pytz.UTC)


def start_of_local_day(moment: datetime, timezone_str: Optional[str] = None) -> datetime:
    """UTC instant of local midnight for the day containing ``moment``."""
    local = utc_to_local(moment, timezone_str)
    midnight = datetime.combine(local.date(), time.min)
    return local_to_utc(midnight, timezone_str)


def end_of_local_day(moment: datetime, timezone_str: Optional[str] = None) -> datetime:
    return start_of_local_day(moment, timezone_str) + timedelta(days=1) - timedelta(microseconds=1)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime read from the database (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=pytz.UTC)
    return value.astimezone(pytz.UTC)
