"""Booking conflict detection over half-open intervals"""
from typing import Iterable, List

from domain.enums import BLOCKING_STATUSES
from domain.value_objects import Interval


def conflicts(candidate: Interval, existing: Iterable[Interval]) -> List[Interval]:
    """Intervals from existing that overlap candidate, in input order"""
    return [interval for interval in existing if candidate.overlaps(interval)]


def has_conflict(candidate: Interval, existing: Iterable[Interval]) -> bool:
    return bool(conflicts(candidate, existing))


def holds_calendar(booking) -> bool:
    return booking.status in BLOCKING_STATUSES


def blocking_intervals(bookings: Iterable) -> List[Interval]:
    """Intervals of the bookings that hold the calendar"""
    return [b.interval for b in bookings if holds_calendar(b)]


def conflicting_bookings(candidate: Interval, bookings: Iterable) -> List:
    """Blocking bookings whose interval overlaps candidate"""
    return [b for b in bookings if holds_calendar(b) and candidate.overlaps(b.interval)]
