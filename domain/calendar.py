"""Day-by-day availability calendar"""
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from pydantic import BaseModel

from domain.conflicts import has_conflict
from domain.value_objects import ONE_DAY, Interval, RentalTerms


class CalendarDay(BaseModel):
    date: date
    available: bool
    price: Decimal
    minimum_stay: int

    class Config:
        frozen = True


def build(date_range: Interval, terms: RentalTerms, existing: Iterable[Interval]) -> List[CalendarDay]:
    """One entry per day from date_range.start to date_range.end inclusive.

    existing holds the blocking intervals only. A day is unavailable when any
    part of it overlaps one of them, so a booking starting at 10:00 blocks
    that whole day and a booking ending at 10:00 blocks its last day too.
    """
    blocking = list(existing)
    days = []
    current = date_range.start.date()
    last = date_range.end.date()
    while current <= last:
        days.append(CalendarDay(
            date=current,
            available=not has_conflict(Interval.for_day(current), blocking),
            price=terms.daily_rate,
            minimum_stay=terms.minimum_stay_days,
        ))
        current += ONE_DAY
    return days
