"""
Date helpers for observations, consultations and todos.

Dates coming from the store are ISO strings ("2024-03-15" or full
timestamps); these helpers turn them into comparable values.
"""

from datetime import date, datetime, time
from typing import Optional, Tuple, Union

DateLike = Union[str, date, datetime, None]

_DATE_FORMATS = ['%Y-%m-%d', '%d/%m/%Y', '%Y/%m/%d']


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """
    Parse a date-like value into a naive datetime.

    Supports date and datetime objects, ISO 8601 strings (with or without a
    time part or UTC offset) and the day-first formats used in the UI.

    Args:
        value: Date-like input

    Returns:
        Parsed datetime, or None if the value is empty or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)

    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    return None


def parse_date(value: DateLike) -> Optional[date]:
    """Parse a date-like value and drop the time part."""
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def day_bounds(start: date, end: Optional[date] = None) -> Tuple[datetime, datetime]:
    """
    Build the inclusive [start 00:00:00, end 23:59:59] window.

    When end is omitted the window covers the start day only.
    """
    last_day = end or start
    return (
        datetime.combine(start, time(0, 0, 0)),
        datetime.combine(last_day, time(23, 59, 59)),
    )


def calculate_age_in_days(birth_date: DateLike, at_date: DateLike = None) -> Optional[int]:
    """
    Age in whole days between a birth date and a reference date.

    Args:
        birth_date: Patient date of birth
        at_date: Reference date (today when omitted)

    Returns:
        Number of days, or None if either date is invalid
    """
    birth = parse_date(birth_date)
    at = parse_date(at_date) if at_date is not None else date.today()
    if birth is None or at is None:
        return None
    return (at - birth).days


def _months_between(birth: date, at: date) -> int:
    months = (at.year - birth.year) * 12 + (at.month - birth.month)
    if at.day < birth.day:
        months -= 1
    return months


def format_age_at_date(birth_date: DateLike, at_date: DateLike = None) -> str:
    """
    Human readable age: "N ans" from two years, "N mois" from one month,
    otherwise "N jours".
    """
    birth = parse_date(birth_date)
    at = parse_date(at_date) if at_date is not None else date.today()
    if birth is None or at is None:
        return ""

    total_months = _months_between(birth, at)
    years = total_months // 12
    months = total_months % 12
    if years >= 2:
        return f"{years} ans"
    if months >= 1:
        return f"{months} mois"
    return f"{(at - birth).days} jours"


def format_age_days(age_days: Optional[int]) -> str:
    """Compact age display for observations ("1a2m", "3m")."""
    if not age_days:
        return "-"
    years = age_days // 365
    months = (age_days % 365) // 30
    if years > 0:
        return f"{years}a{months}m"
    return f"{months}m"
