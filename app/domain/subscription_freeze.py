"""
Subscription freeze accounting
"""
from datetime import date
from typing import Iterable, Optional, Tuple


def interval_days(freeze_start: date, freeze_end: Optional[date], today: date) -> int:
    """
    Дней заморозки в одном интервале

    Открытый интервал (freeze_end is None) считается до today.
    Интервал, начинающийся в будущем, даёт 0.
    """
    end = freeze_end if freeze_end is not None else today
    return max((end - freeze_start).days, 0)


def used_freeze_days(intervals: Iterable[Tuple[date, Optional[date]]], today: date) -> int:
    """Cumulative quota consumption across all intervals, the open one included."""
    return sum(interval_days(start, end, today) for start, end in intervals)


def remaining_freeze_days(quota: int, used: int) -> int:
    return max(quota - used, 0)
