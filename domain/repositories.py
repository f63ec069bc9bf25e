"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.entities import Booking
from domain.enums import BookingStatus
from domain.value_objects import AssetListing


class ListingCatalog(ABC):
    """Read-only view of the listing catalog"""

    @abstractmethod
    async def find_by_asset(self, asset_ref: str) -> Optional[AssetListing]:
        """Current rental terms and owner for an asset"""
        pass


class AssetTransaction(ABC):
    """Serializable unit of work over one asset's bookings"""

    @abstractmethod
    async def find_by_asset(self, statuses: Optional[Iterable[BookingStatus]] = None) -> List[Booking]:
        """Bookings of the asset, optionally restricted to statuses"""
        pass

    @abstractmethod
    async def find_by_idempotency_key(self, renter_ref: str, key: str) -> Optional[Booking]:
        """Booking of this asset previously created by renter_ref with key"""
        pass

    @abstractmethod
    async def insert(self, booking: Booking) -> Booking:
        """Insert booking.

        Raises StoreConflictError on an overlapping blocking booking and
        DuplicateIdempotencyKeyError when the renter already used the key on any asset.
        """
        pass

    @abstractmethod
    async def compare_and_swap(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        """Replace booking if it still has expected status and version"""
        pass


class BookingStore(ABC):
    """Repository interface for the Booking Aggregate"""

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_by_asset(self, asset_ref: str, statuses: Optional[Iterable[BookingStatus]] = None) -> List[Booking]:
        """Find bookings for an asset"""
        pass

    @abstractmethod
    async def find_by_party(
        self,
        party_ref: str,
        status: Optional[BookingStatus] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Booking], int]:
        """Page of bookings where party_ref is renter or owner, newest first, plus total"""
        pass

    @abstractmethod
    def asset_transaction(self, asset_ref: str) -> AsyncContextManager[AssetTransaction]:
        """Open a serializable transaction scoped to asset_ref"""
        pass

    @abstractmethod
    async def compare_and_swap(self, booking: Booking, expected_status: BookingStatus, expected_version: int) -> Booking:
        """Replace booking if it still has expected status and version; raises StaleBookingError"""
        pass
