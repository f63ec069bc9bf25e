"""In-Memory Repository Implementations"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.repositories import AssetTransaction, BookingStore, ListingCatalog
from domain.entities import Booking
from domain.enums import BookingStatus
from domain.exceptions import DuplicateIdempotencyKeyError, StaleBookingError, StoreConflictError
from domain.value_objects import AssetListing


class InMemoryListingCatalog(ListingCatalog):
    """In-memory stand-in for the listing catalog"""

    def __init__(self):
        self._storage: Dict[str, AssetListing] = {}

    def register(self, listing: AssetListing) -> AssetListing:
        """Add or replace a listing"""
        self._storage[listing.asset_ref] = listing
        return listing

    async def find_by_asset(self, asset_ref: str) -> Optional[AssetListing]:
        return self._storage.get(asset_ref)


class InMemoryBookingStore(BookingStore):
    """In-memory implementation of BookingStore.

    Each asset has its own lock; holding it is the transaction. Stored
    bookings are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self, latency: float = 0):
        self._storage: Dict[UUID, Booking] = {}
        self._asset_locks: Dict[str, asyncio.Lock] = {}
        self._latency = latency

    async def _io(self) -> None:
        await asyncio.sleep(self._latency)

    def _lock_for(self, asset_ref: str) -> asyncio.Lock:
        if asset_ref not in self._asset_locks:
            self._asset_locks[asset_ref] = asyncio.Lock()
        return self._asset_locks[asset_ref]

    def _select(self, asset_ref: str, statuses: Optional[Iterable[BookingStatus]]) -> List[Booking]:
        wanted = set(statuses) if statuses is not None else None
        return [
            b.model_copy(deep=True) for b in self._storage.values()
            if b.asset_ref == asset_ref and (wanted is None or b.status in wanted)
        ]

    def _check_overlap(self, booking: Booking) -> None:
        # Uniqueness constraint: no two blocking bookings overlap on one asset
        if not booking.holds_calendar():
            return
        for other in self._storage.values():
            if (other.booking_id != booking.booking_id and other.asset_ref == booking.asset_ref
                    and other.holds_calendar() and other.interval.overlaps(booking.interval)):
                raise StoreConflictError(
                    f"Booking {booking.booking_id} overlaps {other.booking_id} on {booking.asset_ref}"
                )

    def _check_idempotency_key(self, booking: Booking) -> None:
        # Uniqueness constraint: one booking per (renter, idempotency key) across all assets
        if not booking.idempotency_key:
            return
        for other in self._storage.values():
            if (other.renter_ref == booking.renter_ref and other.idempotency_key == booking.idempotency_key
                    and other.booking_id != booking.booking_id):
                raise DuplicateIdempotencyKeyError(
                    f"Idempotency key {booking.idempotency_key} already used by booking {other.booking_id}"
                )

    def _insert(self, booking: Booking) -> Booking:
        self._check_idempotency_key(booking)
        self._check_overlap(booking)
        self._storage[booking.booking_id] = booking.model_copy(deep=True)
        return booking

    def _swap(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        current = self._storage.get(booking.booking_id)
        if current is None or current.status != expected_status or current.version != expected_version:
            raise StaleBookingError(f"Booking {booking.booking_id} was modified concurrently")
        self._check_overlap(booking)
        self._storage[booking.booking_id] = booking.model_copy(deep=True)
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        await self._io()
        booking = self._storage.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def find_by_asset(self, asset_ref: str, statuses: Optional[Iterable[BookingStatus]] = None) -> List[Booking]:
        await self._io()
        return self._select(asset_ref, statuses)

    async def find_by_party(
        self,
        party_ref: str,
        status: Optional[BookingStatus] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Booking], int]:
        await self._io()
        matches = [
            b for b in self._storage.values()
            if party_ref in (b.renter_ref, b.owner_ref) and (status is None or b.status == status)
        ]
        matches.sort(key=lambda b: b.created_at, reverse=True)
        page = [b.model_copy(deep=True) for b in matches[offset:offset + limit]]
        return page, len(matches)

    @asynccontextmanager
    async def asset_transaction(self, asset_ref: str) -> AsyncIterator[AssetTransaction]:
        async with self._lock_for(asset_ref):
            yield _InMemoryAssetTransaction(self, asset_ref)

    async def compare_and_swap(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        await self._io()
        return self._swap(booking, expected_status, expected_version)


class _InMemoryAssetTransaction(AssetTransaction):
    """Operations available while an asset's lock is held"""

    def __init__(self, store: InMemoryBookingStore, asset_ref: str):
        self._store = store
        self._asset_ref = asset_ref

    def _own(self, booking: Booking) -> None:
        if booking.asset_ref != self._asset_ref:
            raise ValueError(f"Transaction is scoped to asset {self._asset_ref}")

    async def find_by_asset(self, statuses: Optional[Iterable[BookingStatus]] = None) -> List[Booking]:
        await self._store._io()
        return self._store._select(self._asset_ref, statuses)

    async def find_by_idempotency_key(self, renter_ref: str, key: str) -> Optional[Booking]:
        await self._store._io()
        for booking in self._store._storage.values():
            if (booking.asset_ref == self._asset_ref and booking.renter_ref == renter_ref
                    and booking.idempotency_key == key):
                return booking.model_copy(deep=True)
        return None

    async def insert(self, booking: Booking) -> Booking:
        self._own(booking)
        await self._store._io()
        return self._store._insert(booking)

    async def compare_and_swap(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        self._own(booking)
        await self._store._io()
        return self._store._swap(booking, expected_status, expected_version)
