"""Domain Enums"""
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class InsuranceTier(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"
    COMPREHENSIVE = "comprehensive"


class LocationType(str, Enum):
    DEALERSHIP = "dealership"
    AIRPORT = "airport"
    HOME = "home"
    CUSTOM = "custom"


# Statuses that reserve the calendar against new overlapping bookings
BLOCKING_STATUSES = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.PAID,
    BookingStatus.ACTIVE,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})

# Statuses a booking may be created in
INITIAL_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
})

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.PAYMENT_PENDING, BookingStatus.CANCELLED}),
    BookingStatus.PAYMENT_PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED, BookingStatus.DISPUTED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED, BookingStatus.DISPUTED}),
    BookingStatus.DISPUTED: frozenset({BookingStatus.ACTIVE, BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def allowed_next_statuses(current: BookingStatus) -> frozenset:
    """Next statuses reachable from current in one step"""
    return ALLOWED_TRANSITIONS.get(current, frozenset())
