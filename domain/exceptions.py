"""Domain Exceptions"""
from typing import Iterable, List, Optional


class ReservationError(Exception):
    """Base class for every failure the engine reports to callers"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BookingValidationError(ReservationError):
    pass


class AssetNotAvailableError(ReservationError):
    def __init__(self, asset_ref: str):
        self.asset_ref = asset_ref
        super().__init__(f"Asset {asset_ref} is not available for rent")


class BelowMinimumStayError(ReservationError):
    def __init__(self, minimum_stay_days: int, requested_days: int):
        self.minimum_stay_days = minimum_stay_days
        self.requested_days = requested_days
        super().__init__(
            f"Minimum rental period is {minimum_stay_days} days, requested {requested_days}"
        )


class DateRangeConflictError(ReservationError):
    def __init__(self, asset_ref: str, conflicting_ids: Optional[Iterable] = None):
        self.asset_ref = asset_ref
        self.conflicting_ids: List = list(conflicting_ids or [])
        super().__init__(f"Asset {asset_ref} is not available for the selected dates")


class ForbiddenError(ReservationError):
    def __init__(self, actor_ref: str, message: str = "Actor is not a party to this booking"):
        self.actor_ref = actor_ref
        super().__init__(message)


class InvalidTransitionError(ReservationError):
    def __init__(self, current, target, allowed: Iterable):
        self.current = current
        self.target = target
        self.allowed = sorted(s.value for s in allowed)
        allowed_text = ", ".join(self.allowed) or "none (terminal status)"
        super().__init__(
            f"Cannot move booking from {current.value} to {target.value}; allowed: {allowed_text}"
        )


class BookingNotFoundError(ReservationError):
    def __init__(self, booking_id):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


# ==================== STORE ERRORS ====================

class StoreError(Exception):
    """Raised by BookingStore implementations"""


class TransientStoreError(StoreError):
    """Connection loss, aborted transaction; safe to retry"""


class StoreConflictError(StoreError):
    """Uniqueness constraint on (asset, interval) rejected an insert"""


class StaleBookingError(StoreError):
    """Compare-and-swap lost against a concurrent update"""


class DuplicateIdempotencyKeyError(StoreError):
    """Uniqueness constraint on (renter, idempotency key) rejected an insert"""
