"""Utility functions for the Work-Log Monitoring Service"""
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Tuple
import math
import re

from models import has_value

_SHORT_TIME = re.compile(r'^\d{1,2}:\d{2}$')


def parse_date_part(value: Any) -> Optional[date]:
    """
    Extract the calendar date from a backend date value.

    Accepts 'YYYY-MM-DD' as well as ISO date-times ('2025-10-08T00:00:00.000Z'),
    keeping only the date part.
    """
    if not has_value(value):
        return None
    text = str(value).strip()
    for separator in ('T', ' '):
        if separator in text:
            text = text.split(separator)[0]
            break
    try:
        return datetime.strptime(text[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def normalize_time(value: Any) -> Optional[str]:
    """Return a time value as 'HH:MM:SS'; 'HH:MM' gains ':00'"""
    if not has_value(value):
        return None
    text = str(value).strip()
    if 'T' in text:
        text = text.split('T', 1)[1]
    text = text.rstrip('Z').split('.')[0].split('+')[0]
    if _SHORT_TIME.match(text):
        return f"{text}:00"
    return text


def parse_time_part(value: Any) -> Optional[time]:
    text = normalize_time(value)
    if text is None:
        return None
    try:
        return datetime.strptime(text, '%H:%M:%S').time()
    except ValueError:
        return None


def combine_date_time(date_value: Any, time_value: Any) -> Optional[datetime]:
    """Build a local datetime from separate backend date and time fields"""
    day = parse_date_part(date_value)
    if day is None:
        return None
    moment = parse_time_part(time_value) if has_value(time_value) else time(0, 0, 0)
    if moment is None:
        return None
    return datetime.combine(day, moment)


def parse_target_date(value: str) -> date:
    """Parse a 'YYYY-MM-DD' override date, raising ValueError when invalid"""
    return datetime.strptime(value, '%Y-%m-%d').date()


def interval_overlap_seconds(
    start: datetime,
    end: datetime,
    window_start: datetime,
    window_end: datetime
) -> int:
    """max(0, min(end, window_end) - max(start, window_start)) in whole seconds"""
    overlap = (min(end, window_end) - max(start, window_start)).total_seconds()
    return max(0, int(overlap))


def get_shift_window(day: date, shift_start: time, shift_seconds: int) -> Tuple[datetime, datetime]:
    """
    Get shift start and nominal end for a given date.

    Args:
        day: Calendar day of the shift
        shift_start: Local start time (06:30 by default)
        shift_seconds: Nominal duration in seconds

    Returns:
        Tuple of (start_datetime, end_datetime)
    """
    start_dt = datetime.combine(day, shift_start)
    return start_dt, start_dt + timedelta(seconds=shift_seconds)


def get_break_window(day: date, break_start: time, break_end: time) -> Tuple[datetime, datetime]:
    return datetime.combine(day, break_start), datetime.combine(day, break_end)


def to_number(value: Any) -> float:
    """Numeric value of a backend field; anything unusable becomes 0"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def normalize_dedicated_seconds(value: Any, legacy_millis: bool = False) -> float:
    """
    Dedicated time in seconds.

    The backend contract is seconds. With legacy_millis enabled, values above 1e9
    are read as milliseconds, matching older clients of the same endpoint.
    """
    seconds = to_number(value)
    if seconds < 0:
        return 0.0
    if legacy_millis and seconds > 1e9:
        seconds = math.floor(seconds / 1000)
    return seconds


def format_hours_minutes(seconds: Optional[float]) -> str:
    """Short duration label, e.g. '2h 05m'"""
    if seconds is None:
        return '-'
    total = max(0, int(seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    return f"{hours}h {minutes:02d}m"


def format_duration(seconds: Optional[float]) -> str:
    """Long duration label as shown on the shop-floor screens"""
    if seconds is None:
        return '-'
    total = max(0, int(seconds))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    if days > 0:
        plural = 's' if days > 1 else ''
        return f"{days} dia{plural} - {hours} horas - {minutes} minutos"
    if hours > 0:
        return f"{hours} horas - {minutes} minutos"
    return f"{minutes} minutos - {secs} segundos"
