"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from pydantic import ValidationError

from config import Settings
from application.retry import call_with_retry
from domain import calendar, pricing
from domain.auth import Actor
from domain.calendar import CalendarDay
from domain.conflicts import blocking_intervals, conflicting_bookings
from domain.entities import Booking
from domain.enums import BookingStatus, InsuranceTier, BLOCKING_STATUSES
from domain.exceptions import (
    AssetNotAvailableError, BelowMinimumStayError, BookingNotFoundError, BookingValidationError,
    DateRangeConflictError, DuplicateIdempotencyKeyError, ForbiddenError, StaleBookingError, StoreConflictError,
    TransientStoreError,
)
from domain.repositories import BookingStore, ListingCatalog
from domain.value_objects import AssetListing, Interval, Location, PriceBreakdown, coerce_tier, utc_now

logger = logging.getLogger(__name__)

# Reload-and-revalidate rounds when a status update loses a compare-and-swap
MAX_TRANSITION_ATTEMPTS = 3


def build_interval(start: datetime, end: datetime) -> Interval:
    try:
        return Interval(start=start, end=end)
    except ValidationError as e:
        raise BookingValidationError(f"Invalid date range: {e.errors()[0]['msg']}") from e


async def load_rentable_listing(catalog: ListingCatalog, settings: Settings, asset_ref: str) -> AssetListing:
    listing = await call_with_retry(settings, catalog.find_by_asset, asset_ref)
    if listing is None or not listing.terms.available_for_rent:
        raise AssetNotAvailableError(asset_ref)
    return listing


def check_minimum_stay(listing: AssetListing, days: int) -> None:
    if days < listing.terms.minimum_stay_days:
        raise BelowMinimumStayError(listing.terms.minimum_stay_days, days)


class BookingLifecycle:
    """Creates bookings and drives them through the status graph"""

    def __init__(self, store: BookingStore, catalog: ListingCatalog, settings: Settings):
        self.store = store
        self.catalog = catalog
        self.settings = settings

    async def create(
        self,
        asset_ref: str,
        renter_ref: str,
        start: datetime,
        end: datetime,
        insurance_tier: InsuranceTier = InsuranceTier.BASIC,
        pickup: Optional[Location] = None,
        dropoff: Optional[Location] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        initial_status: BookingStatus = BookingStatus.PENDING
    ) -> Booking:
        """Create a booking; the conflict check and insert run as one atomic step"""
        interval = build_interval(start, end)
        tier = coerce_tier(insurance_tier)
        if tier is None:
            raise BookingValidationError(f"Unknown insurance tier: {insurance_tier}")

        listing = await load_rentable_listing(self.catalog, self.settings, asset_ref)
        check_minimum_stay(listing, interval.duration_days())

        try:
            booking = await call_with_retry(
                self.settings, self._create_atomically,
                listing, renter_ref, interval, tier, pickup, dropoff, notes, idempotency_key, initial_status
            )
        except StoreConflictError as e:
            logger.warning("Store rejected overlapping booking on %s: %s", asset_ref, e)
            raise DateRangeConflictError(asset_ref) from e
        except DuplicateIdempotencyKeyError as e:
            logger.warning("Idempotency key %s reused for a different booking: %s", idempotency_key, e)
            raise BookingValidationError(
                f"Idempotency key {idempotency_key} was already used for a different booking"
            ) from e

        logger.info("Booking %s created for asset %s (%s)", booking.booking_id, asset_ref, booking.status.value)
        return booking

    async def _create_atomically(
        self,
        listing: AssetListing,
        renter_ref: str,
        interval: Interval,
        tier: InsuranceTier,
        pickup: Optional[Location],
        dropoff: Optional[Location],
        notes: Optional[str],
        idempotency_key: Optional[str],
        initial_status: BookingStatus
    ) -> Booking:
        async with self.store.asset_transaction(listing.asset_ref) as tx:
            if idempotency_key:
                existing = await tx.find_by_idempotency_key(renter_ref, idempotency_key)
                if existing is not None:
                    if existing.interval != interval:
                        raise BookingValidationError(
                            f"Idempotency key {idempotency_key} was already used for a different booking"
                        )
                    logger.info("Replaying booking %s for idempotency key %s", existing.booking_id, idempotency_key)
                    return existing

            blocking = await tx.find_by_asset(BLOCKING_STATUSES)
            clashes = conflicting_bookings(interval, blocking)
            if clashes:
                raise DateRangeConflictError(listing.asset_ref, [b.booking_id for b in clashes])

            breakdown = pricing.quote(interval.duration_days(), listing.terms, tier, self.settings.currency)
            booking = Booking.create(
                asset_ref=listing.asset_ref,
                renter_ref=renter_ref,
                owner_ref=listing.owner_ref,
                interval=interval,
                pricing=breakdown,
                insurance_tier=tier,
                pickup=pickup,
                dropoff=dropoff,
                notes=notes,
                idempotency_key=idempotency_key,
                initial_status=initial_status
            )
            return await tx.insert(booking)

    async def transition(
        self,
        booking_id: UUID,
        actor: Actor,
        next_status: BookingStatus,
        notes: Optional[str] = None,
        reason: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> Booking:
        """Move a booking to next_status on behalf of actor"""
        if next_status == BookingStatus.PAID and not actor.privileged:
            raise ForbiddenError(actor.actor_ref, "Only the payment collaborator may mark a booking paid")
        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            booking = await self.get_booking(booking_id, actor)
            expected_status, expected_version = booking.status, booking.version

            booking.transition_to(next_status, actor.actor_ref, notes=notes, reason=reason, transaction_id=transaction_id)

            try:
                if booking.holds_calendar() and expected_status not in BLOCKING_STATUSES:
                    saved = await call_with_retry(
                        self.settings, self._swap_into_calendar, booking, expected_status, expected_version
                    )
                else:
                    saved = await call_with_retry(
                        self.settings, self.store.compare_and_swap, booking, expected_status, expected_version
                    )
            except StaleBookingError:
                logger.info("Booking %s changed concurrently, reloading (attempt %d)", booking_id, attempt)
                continue
            except StoreConflictError as e:
                raise DateRangeConflictError(booking.asset_ref) from e

            logger.info(
                "Booking %s moved %s -> %s by %s",
                booking_id, expected_status.value, saved.status.value, actor.actor_ref
            )
            return saved

        raise TransientStoreError(f"Booking {booking_id} is being updated concurrently, try again")

    async def _swap_into_calendar(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        # Entering a blocking status claims the calendar, so re-check under the asset transaction
        async with self.store.asset_transaction(booking.asset_ref) as tx:
            blocking = await tx.find_by_asset(BLOCKING_STATUSES)
            others = [b for b in blocking if b.booking_id != booking.booking_id]
            clashes = conflicting_bookings(booking.interval, others)
            if clashes:
                raise DateRangeConflictError(booking.asset_ref, [b.booking_id for b in clashes])
            return await tx.compare_and_swap(booking, expected_status, expected_version)

    async def record_payment(self, booking_id: UUID, actor: Actor, transaction_id: Optional[str] = None) -> Booking:
        """Apply a payment notification from the payment collaborator"""
        if not actor.privileged:
            raise ForbiddenError(actor.actor_ref)
        return await self.transition(booking_id, actor, BookingStatus.PAID, transaction_id=transaction_id)

    async def get_booking(self, booking_id: UUID, actor: Actor) -> Booking:
        """Get booking by ID if actor is a party to it or an operator"""
        booking = await call_with_retry(self.settings, self.store.find_by_id, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if not (actor.privileged or booking.is_party(actor.actor_ref)):
            logger.warning("Actor %s denied access to booking %s", actor.actor_ref, booking_id)
            raise ForbiddenError(actor.actor_ref)
        return booking

    async def list_bookings(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> Tuple[List[Booking], int]:
        """Bookings where actor is renter or owner, newest first"""
        if page < 1:
            raise BookingValidationError("Page must be 1 or greater")
        limit = limit or self.settings.default_page_size
        return await call_with_retry(
            self.settings, self.store.find_by_party,
            actor.actor_ref, status, (page - 1) * limit, limit
        )


class AvailabilityService:
    """Read-only availability and quote use cases"""

    def __init__(self, store: BookingStore, catalog: ListingCatalog, settings: Settings):
        self.store = store
        self.catalog = catalog
        self.settings = settings

    async def _blocking_bookings(self, asset_ref: str) -> List[Booking]:
        return await call_with_retry(self.settings, self.store.find_by_asset, asset_ref, BLOCKING_STATUSES)

    async def get_availability(
        self,
        asset_ref: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Tuple[AssetListing, List[CalendarDay]]:
        """Calendar for the asset, defaulting to the configured window from now"""
        start = start or utc_now()
        end = end or start + timedelta(days=self.settings.availability_window_days)
        date_range = build_interval(start, end)
        if date_range.duration_days() > self.settings.max_availability_days:
            raise BookingValidationError(
                f"Availability range may span at most {self.settings.max_availability_days} days"
            )

        listing = await load_rentable_listing(self.catalog, self.settings, asset_ref)
        bookings = await self._blocking_bookings(asset_ref)
        return listing, calendar.build(date_range, listing.terms, blocking_intervals(bookings))

    async def quote_interval(
        self,
        asset_ref: str,
        start: datetime,
        end: datetime,
        insurance_tier=InsuranceTier.BASIC
    ) -> Tuple[int, PriceBreakdown]:
        """Price a prospective booking without creating it"""
        interval = build_interval(start, end)
        days = interval.duration_days()

        listing = await load_rentable_listing(self.catalog, self.settings, asset_ref)
        check_minimum_stay(listing, days)

        clashes = conflicting_bookings(interval, await self._blocking_bookings(asset_ref))
        if clashes:
            raise DateRangeConflictError(asset_ref, [b.booking_id for b in clashes])

        return days, pricing.quote(days, listing.terms, insurance_tier, self.settings.currency)
