"""Week-start normalization shared by the store and the reconciler."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Tuple, Union

WEEK_LENGTH = timedelta(days=7)

WeekStartLike = Union[date, datetime]


def normalize_week_start(value: WeekStartLike) -> date:
    """Return the local calendar day of ``value`` (its local midnight)."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def week_window(value: WeekStartLike) -> Tuple[date, date]:
    """Return the half-open ``[start, start + 7 days)`` window for a week."""

    start = normalize_week_start(value)
    return start, start + WEEK_LENGTH


def monday_of(value: WeekStartLike) -> date:
    day = normalize_week_start(value)
    return day - timedelta(days=day.weekday())


__all__ = ["WEEK_LENGTH", "WeekStartLike", "monday_of", "normalize_week_start", "week_window"]
