from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from .errors import DomainValidationError, InvalidRange

MONDAY = 0


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    RANGE = "range"


@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    period: Period = Period.RANGE

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidRange(f"window end {self.end.isoformat()} is before start {self.start.isoformat()}")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def start_of_day(value: date | datetime) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def end_of_day(value: date | datetime) -> datetime:
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max)


def start_of_week(value: datetime, week_start: int = MONDAY) -> datetime:
    offset = (value.weekday() - week_start) % 7
    return start_of_day(value - timedelta(days=offset))


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value.replace(day=1))


def resolve_window(
    period: Period | str,
    *,
    now: datetime | None = None,
    date_from: date | datetime | None = None,
    date_to: date | datetime | None = None,
    week_start: int = MONDAY,
) -> TimeWindow:
    try:
        period = Period(period)
    except ValueError as exc:
        raise DomainValidationError(f"unknown period: {period}") from exc
    if not 0 <= week_start <= 6:
        raise DomainValidationError("week_start must be a weekday number between 0 and 6")

    current = now or datetime.now()
    if period == Period.TODAY:
        return TimeWindow(start_of_day(current), end_of_day(current), period)
    if period == Period.WEEK:
        return TimeWindow(start_of_week(current, week_start), current, period)
    if period == Period.MONTH:
        return TimeWindow(start_of_month(current), current, period)

    if date_from is None or date_to is None:
        raise InvalidRange("range period requires both from and to")
    requested_from = date_from if isinstance(date_from, datetime) else start_of_day(date_from)
    requested_to = date_to if isinstance(date_to, datetime) else end_of_day(date_to)
    if requested_to < requested_from:
        raise InvalidRange(f"range ends at {requested_to.isoformat()} before it starts at {requested_from.isoformat()}")
    return TimeWindow(requested_from, requested_to, period)


def previous_window(window: TimeWindow) -> TimeWindow:
    """The window of equal length that ends just before ``window`` starts."""
    span = window.end - window.start
    end = window.start - timedelta(microseconds=1)
    return TimeWindow(end - span, end, window.period)
