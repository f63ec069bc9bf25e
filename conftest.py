import pytest
from fastapi.testclient import TestClient
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import main
from application.services import AvailabilityService, BookingLifecycle
from config import Settings, get_settings
from domain.auth import Actor
from domain.value_objects import AssetListing, RentalTerms
from infrastructure.repositories.in_memory_repositories import InMemoryBookingStore, InMemoryListingCatalog
from infrastructure.security import create_actor_token

ASSET = "car-001"
OWNER = "owner-1"
RENTER = "renter-1"
OPERATOR_SCOPE = "bookings:operate"

# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def settings():
    return Settings(store_retry_min_wait=0, store_retry_max_wait=0)


@pytest.fixture
def base_start():
    return datetime(2030, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def days_after(base_start):
    """Datetime n days after the base start"""
    def _at(n):
        return base_start + timedelta(days=n)
    return _at


@pytest.fixture
def sample_terms():
    return RentalTerms(
        daily_rate=Decimal("50"),
        weekly_rate=Decimal("300"),
        monthly_rate=Decimal("1000"),
        deposit_amount=Decimal("200"),
        minimum_stay_days=2,
        available_for_rent=True
    )


@pytest.fixture
def sample_listing(sample_terms):
    return AssetListing(asset_ref=ASSET, owner_ref=OWNER, terms=sample_terms)


@pytest.fixture
def booking_store():
    return InMemoryBookingStore()


@pytest.fixture
def listing_catalog(sample_listing):
    catalog = InMemoryListingCatalog()
    catalog.register(sample_listing)
    return catalog


@pytest.fixture
def lifecycle(booking_store, listing_catalog, settings):
    return BookingLifecycle(booking_store, listing_catalog, settings)


@pytest.fixture
def availability_service(booking_store, listing_catalog, settings):
    return AvailabilityService(booking_store, listing_catalog, settings)


@pytest.fixture
def renter():
    return Actor(actor_ref=RENTER)


@pytest.fixture
def owner():
    return Actor(actor_ref=OWNER)


@pytest.fixture
def operator():
    return Actor(actor_ref="payments-gateway", privileged=True)


@pytest.fixture
def stranger():
    return Actor(actor_ref="someone-else")


@pytest.fixture
def client(monkeypatch, sample_listing):
    """FastAPI test client over fresh in-memory repositories"""
    catalog = InMemoryListingCatalog()
    catalog.register(sample_listing)
    monkeypatch.setattr(main, "booking_store", InMemoryBookingStore())
    monkeypatch.setattr(main, "listing_catalog", catalog)
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Bearer headers for an actor reference"""
    def _headers(actor_ref=RENTER, scopes=None):
        token = create_actor_token(get_settings(), actor_ref, scopes)
        return {"Authorization": f"Bearer {token}"}
    return _headers
