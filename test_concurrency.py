"""
Concurrency tests for the booking write path
Races run on one event loop against a store with simulated I/O latency
"""

import asyncio
import random
import pytest
from itertools import combinations

from application.services import BookingLifecycle
from domain.enums import BookingStatus, BLOCKING_STATUSES
from domain.exceptions import BookingValidationError, DateRangeConflictError, InvalidTransitionError
from infrastructure.repositories.in_memory_repositories import InMemoryBookingStore

from conftest import ASSET, RENTER


@pytest.fixture
def slow_lifecycle(listing_catalog, settings):
    return BookingLifecycle(InMemoryBookingStore(latency=0.001), listing_catalog, settings)


def split_results(results):
    succeeded = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    return succeeded, failed


class TestConcurrentCreation:

    @pytest.mark.concurrency
    async def test_simultaneous_overlapping_creates(self, slow_lifecycle, days_after):
        results = await asyncio.gather(
            slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(5), initial_status=BookingStatus.CONFIRMED),
            slow_lifecycle.create(ASSET, "renter-2", days_after(3), days_after(8), initial_status=BookingStatus.CONFIRMED),
            return_exceptions=True
        )
        succeeded, failed = split_results(results)
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], DateRangeConflictError)

    @pytest.mark.concurrency
    async def test_simultaneous_pending_creates_both_succeed(self, slow_lifecycle, days_after):
        results = await asyncio.gather(
            slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(5)),
            slow_lifecycle.create(ASSET, "renter-2", days_after(3), days_after(8)),
        )
        assert all(b.status == BookingStatus.PENDING for b in results)

    @pytest.mark.concurrency
    async def test_idempotent_retry_race(self, slow_lifecycle, days_after):
        first, second = await asyncio.gather(
            slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(3), idempotency_key="checkout-7"),
            slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(3), idempotency_key="checkout-7"),
        )
        assert first.booking_id == second.booking_id

    @pytest.mark.concurrency
    async def test_same_key_on_two_assets_creates_one_booking(
        self, slow_lifecycle, listing_catalog, sample_listing, days_after
    ):
        listing_catalog.register(sample_listing.model_copy(update={"asset_ref": "car-002"}))
        results = await asyncio.gather(
            slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(3), idempotency_key="checkout-8"),
            slow_lifecycle.create("car-002", RENTER, days_after(0), days_after(3), idempotency_key="checkout-8"),
            return_exceptions=True
        )
        succeeded, failed = split_results(results)
        assert len(succeeded) == 1
        assert isinstance(failed[0], BookingValidationError)

        bookings, total = await slow_lifecycle.store.find_by_party(RENTER)
        assert total == 1

    @pytest.mark.concurrency
    @pytest.mark.parametrize("seed", range(5))
    async def test_no_overlapping_blocking_bookings(self, slow_lifecycle, days_after, seed):
        rng = random.Random(seed)
        requests = []
        for i in range(20):
            start = rng.randint(0, 40)
            requests.append(slow_lifecycle.create(
                ASSET, f"renter-{i}", days_after(start), days_after(start + rng.randint(2, 6)),
                initial_status=BookingStatus.CONFIRMED
            ))

        results = await asyncio.gather(*requests, return_exceptions=True)
        succeeded, failed = split_results(results)
        assert succeeded
        assert all(isinstance(e, DateRangeConflictError) for e in failed)

        stored = await slow_lifecycle.store.find_by_asset(ASSET, BLOCKING_STATUSES)
        assert len(stored) == len(succeeded)
        for a, b in combinations(stored, 2):
            assert not a.interval.overlaps(b.interval)


class TestConcurrentTransitions:

    @pytest.mark.concurrency
    async def test_confirming_overlapping_pending_bookings(self, slow_lifecycle, owner, days_after):
        first = await slow_lifecycle.create(ASSET, RENTER, days_after(0), days_after(5))
        second = await slow_lifecycle.create(ASSET, "renter-2", days_after(4), days_after(9))

        results = await asyncio.gather(
            slow_lifecycle.transition(first.booking_id, owner, BookingStatus.CONFIRMED),
            slow_lifecycle.transition(second.booking_id, owner, BookingStatus.CONFIRMED),
            return_exceptions=True
        )
        succeeded, failed = split_results(results)
        assert len(succeeded) == 1
        assert isinstance(failed[0], DateRangeConflictError)

    @pytest.mark.concurrency
    async def test_status_race_has_one_winner(self, slow_lifecycle, owner, renter, operator, days_after):
        booking = await slow_lifecycle.create(
            ASSET, RENTER, days_after(0), days_after(3), initial_status=BookingStatus.CONFIRMED
        )
        await slow_lifecycle.transition(booking.booking_id, renter, BookingStatus.PAYMENT_PENDING)
        paid = await slow_lifecycle.record_payment(booking.booking_id, operator, "txn_9")

        results = await asyncio.gather(
            slow_lifecycle.transition(booking.booking_id, owner, BookingStatus.ACTIVE),
            slow_lifecycle.transition(booking.booking_id, renter, BookingStatus.CANCELLED),
            return_exceptions=True
        )
        succeeded, failed = split_results(results)
        assert len(succeeded) == 1
        assert isinstance(failed[0], InvalidTransitionError)

        stored = await slow_lifecycle.store.find_by_id(booking.booking_id)
        assert stored.status == succeeded[0].status
        assert stored.version == paid.version + 1
