from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, Depends, Query

from api.schemas import (
    # Bookings
    CreateBookingRequest, UpdateStatusRequest, PaymentNotificationRequest,
    BookingResponse, BookingListResponse, LocationSchema,
    # Quotes & availability
    QuoteRequest, QuoteResponse, AvailabilityResponse, CalendarDayResponse, RatesResponse,
    PriceBreakdownResponse,
)
from api.dependencies import get_current_actor
from api.errors import register_exception_handlers
from application.services import AvailabilityService, BookingLifecycle
from config import Settings, configure_logging, get_settings
from domain.auth import Actor
from domain.entities import Booking
from domain.enums import BookingStatus, InsuranceTier, allowed_next_statuses
from domain.value_objects import Location
from infrastructure.repositories.in_memory_repositories import InMemoryBookingStore, InMemoryListingCatalog


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings())
    yield


app = FastAPI(
    title=get_settings().app_name,
    description="Availability, pricing and booking lifecycle for rentable assets",
    version="1.0.0",
    lifespan=lifespan
)
register_exception_handlers(app)

# Initialize repositories
booking_store = InMemoryBookingStore()
listing_catalog = InMemoryListingCatalog()

# Dependency injection
def get_booking_lifecycle(settings: Settings = Depends(get_settings)) -> BookingLifecycle:
    return BookingLifecycle(booking_store, listing_catalog, settings)

def get_availability_service(settings: Settings = Depends(get_settings)) -> AvailabilityService:
    return AvailabilityService(booking_store, listing_catalog, settings)

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Booking statuses and the statuses each may move to"""
    return {
        "values": [item.value for item in BookingStatus],
        "transitions": {
            item.value: sorted(s.value for s in allowed_next_statuses(item)) for item in BookingStatus
        }
    }

@app.get("/api/enums/insurance-tier", tags=["Enum Reference"])
async def get_insurance_tiers():
    """Get all InsuranceTier enum values"""
    return {"values": [item.value for item in InsuranceTier]}

# ============================================================================
# AVAILABILITY & QUOTE ENDPOINTS
# ============================================================================

@app.get("/api/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def get_availability(
    asset: str = Query(..., min_length=1),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: AvailabilityService = Depends(get_availability_service),
    current_actor: Actor = Depends(get_current_actor)
):
    """Day-by-day availability for an asset"""
    listing, days = await service.get_availability(asset, start, end)
    terms = listing.terms
    return AvailabilityResponse(
        asset_ref=listing.asset_ref,
        days=[CalendarDayResponse(**day.model_dump()) for day in days],
        pricing=RatesResponse(
            daily_rate=terms.daily_rate,
            weekly_rate=terms.weekly_rate,
            monthly_rate=terms.monthly_rate,
            deposit=terms.deposit_amount,
            minimum_stay_days=terms.minimum_stay_days
        )
    )

@app.post("/api/quotes", response_model=QuoteResponse, tags=["Availability"])
async def create_quote(
    request: QuoteRequest,
    service: AvailabilityService = Depends(get_availability_service),
    current_actor: Actor = Depends(get_current_actor)
):
    """Price a rental interval without booking it"""
    days, breakdown = await service.quote_interval(
        asset_ref=request.asset_ref,
        start=request.start,
        end=request.end,
        insurance_tier=request.insurance_tier
    )
    return QuoteResponse(
        asset_ref=request.asset_ref,
        start=request.start,
        end=request.end,
        days=days,
        pricing=PriceBreakdownResponse.model_validate(breakdown)
    )

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_actor: Actor = Depends(get_current_actor)
):
    """Book an asset for the current actor"""
    booking = await lifecycle.create(
        asset_ref=request.asset_ref,
        renter_ref=current_actor.actor_ref,
        start=request.start,
        end=request.end,
        insurance_tier=request.insurance_tier,
        pickup=_location_from_schema(request.pickup),
        dropoff=_location_from_schema(request.dropoff),
        notes=request.notes,
        idempotency_key=request.idempotency_key
    )
    return _booking_to_response(booking)

@app.get("/api/bookings", response_model=BookingListResponse, tags=["Bookings"])
async def list_bookings(
    status: Optional[BookingStatus] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_actor: Actor = Depends(get_current_actor)
):
    """Bookings where the current actor is renter or owner"""
    bookings, total = await lifecycle.list_bookings(current_actor, status=status, page=page, limit=limit)
    return BookingListResponse(
        bookings=[_booking_to_response(b) for b in bookings],
        page=page,
        limit=limit or lifecycle.settings.default_page_size,
        total=total
    )

@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_actor: Actor = Depends(get_current_actor)
):
    """Get booking by ID"""
    booking = await lifecycle.get_booking(booking_id, current_actor)
    return _booking_to_response(booking)

@app.patch("/api/bookings/{booking_id}/status", response_model=BookingResponse, tags=["Bookings"])
async def update_booking_status(
    booking_id: UUID,
    request: UpdateStatusRequest,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_actor: Actor = Depends(get_current_actor)
):
    """Move a booking to its next status"""
    booking = await lifecycle.transition(
        booking_id=booking_id,
        actor=current_actor,
        next_status=request.next_status,
        notes=request.notes,
        reason=request.reason
    )
    return _booking_to_response(booking)

@app.post("/api/bookings/{booking_id}/payment-notifications", response_model=BookingResponse, tags=["Bookings"])
async def notify_payment(
    booking_id: UUID,
    request: PaymentNotificationRequest,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
    current_actor: Actor = Depends(get_current_actor)
):
    """Payment collaborator reports a settled charge"""
    booking = await lifecycle.record_payment(booking_id, current_actor, request.transaction_id)
    return _booking_to_response(booking)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _location_from_schema(location: Optional[LocationSchema]) -> Optional[Location]:
    if location is None:
        return None
    return Location(**location.model_dump())

def _booking_to_response(booking: Booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        asset_ref=booking.asset_ref,
        renter_ref=booking.renter_ref,
        owner_ref=booking.owner_ref,
        start=booking.interval.start,
        end=booking.interval.end,
        total_days=booking.get_days(),
        pricing=PriceBreakdownResponse.model_validate(booking.pricing),
        insurance_tier=booking.insurance_tier.value,
        pickup=LocationSchema.model_validate(booking.pickup),
        dropoff=LocationSchema.model_validate(booking.dropoff),
        status=booking.status.value,
        notes=booking.notes,
        cancellation=booking.cancellation.model_dump() if booking.cancellation else None,
        payment=booking.payment.model_dump() if booking.payment else None,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        version=booking.version
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
