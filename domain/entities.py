"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timedelta
from typing import Optional

from domain.enums import (
    BookingStatus, InsuranceTier, BLOCKING_STATUSES, INITIAL_STATUSES, TERMINAL_STATUSES,
    allowed_next_statuses,
)
from domain.exceptions import BookingValidationError, InvalidTransitionError
from domain.value_objects import (
    Interval, PriceBreakdown, Location, CancellationRecord, PaymentRecord, utc_now,
)


class Booking(BaseModel):
    """Booking Aggregate Root Entity"""

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)

    # Opaque references owned by other contexts
    asset_ref: str
    renter_ref: str
    owner_ref: str

    # Value Objects
    interval: Interval
    pricing: PriceBreakdown
    insurance_tier: InsuranceTier = InsuranceTier.BASIC
    pickup: Location = Field(default_factory=Location)
    dropoff: Location = Field(default_factory=Location)

    status: BookingStatus = BookingStatus.PENDING

    notes: Optional[str] = None
    idempotency_key: Optional[str] = None
    cancellation: Optional[CancellationRecord] = None
    payment: Optional[PaymentRecord] = None

    # Metadata
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        asset_ref: str,
        renter_ref: str,
        owner_ref: str,
        interval: Interval,
        pricing: PriceBreakdown,
        insurance_tier: InsuranceTier,
        pickup: Optional[Location] = None,
        dropoff: Optional[Location] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        initial_status: BookingStatus = BookingStatus.PENDING
    ) -> "Booking":
        """Create a new booking in its initial status"""
        if initial_status not in INITIAL_STATUSES:
            raise BookingValidationError(
                f"Bookings cannot be created in status {initial_status.value}"
            )
        if pricing.total_days != interval.duration_days():
            raise BookingValidationError("Pricing does not cover the booked interval")

        now = utc_now()
        return Booking(
            asset_ref=asset_ref,
            renter_ref=renter_ref,
            owner_ref=owner_ref,
            interval=interval,
            pricing=pricing,
            insurance_tier=insurance_tier,
            pickup=pickup or Location(),
            dropoff=dropoff or Location(),
            notes=notes,
            idempotency_key=idempotency_key,
            status=initial_status,
            created_at=now,
            updated_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(
        self,
        next_status: BookingStatus,
        actor_ref: str,
        notes: Optional[str] = None,
        reason: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> None:
        """Move to next_status if the transition table allows it"""
        if not self.can_transition_to(next_status):
            raise InvalidTransitionError(self.status, next_status, allowed_next_statuses(self.status))

        now = self._next_timestamp()
        if next_status == BookingStatus.CANCELLED:
            self.cancellation = CancellationRecord(reason=reason, cancelled_by=actor_ref, cancelled_at=now)
        if next_status == BookingStatus.PAID:
            self.payment = PaymentRecord(transaction_id=transaction_id, paid_at=now)
        if notes:
            self.notes = notes

        self.status = next_status
        self.updated_at = now
        self.version += 1

    # ==================== QUERY METHODS ====================
    def can_transition_to(self, next_status: BookingStatus) -> bool:
        return next_status in allowed_next_statuses(self.status)

    def is_party(self, actor_ref: str) -> bool:
        return actor_ref in (self.renter_ref, self.owner_ref)

    def holds_calendar(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def get_days(self) -> int:
        return self.interval.duration_days()

    # ==================== PRIVATE METHODS ====================
    def _next_timestamp(self) -> datetime:
        """Now, but never earlier than the last update"""
        now = utc_now()
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        return now
