"""
Date utilities

Canonical wire format is ISO date (YYYY-MM-DD). RFC 3339 datetimes are accepted
and reduced to the calendar date in the application timezone.
"""
import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import get_settings

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:\d{2})?", re.ASCII | re.IGNORECASE,
)


def app_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def local_today() -> date:
    """
    "Сегодня" - календарная дата в часовом поясе приложения (Settings.TIMEZONE)

    Не UTC-усечение: в Europe/Moscow полночь наступает в 21:00 UTC.
    """
    return datetime.now(app_timezone()).date()


def parse_date(value) -> date:
    """
    Распарсить дату из строки / date / datetime

    Args:
        value: "2026-01-31", "2026-01-31T10:00:00Z", date или datetime

    Returns:
        Календарная дата

    Raises:
        ValueError: если формат не распознан

    Example:
        >>> parse_date("2026-01-31")
        datetime.date(2026, 1, 31)
    """
    if isinstance(value, datetime):
        return _datetime_to_local_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    raw = value.strip()
    if not raw:
        raise ValueError("Empty date")

    try:
        if _ISO_DATE.fullmatch(raw):
            return date.fromisoformat(raw)
        if _RFC3339.fullmatch(raw):
            if raw[-1] in "zZ":
                raw = raw[:-1] + "+00:00"
            return _datetime_to_local_date(datetime.fromisoformat(raw))
    except ValueError:
        pass
    # fromisoformat alone also takes 20260131 and 2026-W05-6
    raise ValueError(f"Invalid date format: {value!r}, expected YYYY-MM-DD")


def parse_optional_date(value) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value)


def _datetime_to_local_date(value: datetime) -> date:
    # naive datetimes are treated as already local
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(app_timezone()).date()


def month_start(value: date) -> date:
    return value.replace(day=1)


def iter_months(start: date, end: date):
    """
    Первые числа всех месяцев от start до end включительно

    Example:
        >>> list(iter_months(date(2026, 1, 15), date(2026, 3, 2)))
        [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]
    """
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        yield current
        if current.month == 12:
            current = current.replace(year=current.year + 1, month=1)
        else:
            current = current.replace(month=current.month + 1)
