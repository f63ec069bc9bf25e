"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import BookingStatus, InsuranceTier, LocationType


# ============================================================================
# SHARED SCHEMAS
# ============================================================================

class LocationSchema(BaseModel):
    """Pickup / drop-off location DTO"""
    location_type: LocationType = LocationType.DEALERSHIP
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    instructions: Optional[str] = None
    fee: Decimal = Field(default=Decimal("0"), ge=0)

    class Config:
        from_attributes = True


class PriceBreakdownResponse(BaseModel):
    """Price breakdown DTO"""
    daily_rate: Decimal
    weekly_rate: Optional[Decimal] = None
    monthly_rate: Optional[Decimal] = None
    total_days: int
    base_price: Decimal
    insurance_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    deposit: Decimal
    total_price: Decimal
    currency: str

    class Config:
        from_attributes = True


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class CreateBookingRequest(BaseModel):
    """Create booking request DTO"""
    asset_ref: str = Field(min_length=1)
    start: datetime
    end: datetime
    insurance_tier: InsuranceTier = InsuranceTier.BASIC
    pickup: Optional[LocationSchema] = None
    dropoff: Optional[LocationSchema] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=128)


class UpdateStatusRequest(BaseModel):
    """Status change request DTO"""
    next_status: BookingStatus
    notes: Optional[str] = None
    reason: Optional[str] = None


class PaymentNotificationRequest(BaseModel):
    """Payment collaborator notification DTO"""
    transaction_id: Optional[str] = None


class CancellationResponse(BaseModel):
    reason: Optional[str] = None
    cancelled_by: str
    cancelled_at: datetime


class PaymentResponse(BaseModel):
    transaction_id: Optional[str] = None
    paid_at: datetime


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    asset_ref: str
    renter_ref: str
    owner_ref: str
    start: datetime
    end: datetime
    total_days: int
    pricing: PriceBreakdownResponse
    insurance_tier: str
    pickup: LocationSchema
    dropoff: LocationSchema
    status: str
    notes: Optional[str] = None
    cancellation: Optional[CancellationResponse] = None
    payment: Optional[PaymentResponse] = None
    created_at: datetime
    updated_at: datetime
    version: int


class BookingListResponse(BaseModel):
    """Paginated bookings DTO"""
    bookings: List[BookingResponse]
    page: int
    limit: int
    total: int


# ============================================================================
# QUOTE & AVAILABILITY SCHEMAS
# ============================================================================

class QuoteRequest(BaseModel):
    """Quote request DTO"""
    asset_ref: str = Field(min_length=1)
    start: datetime
    end: datetime
    insurance_tier: InsuranceTier = InsuranceTier.BASIC


class QuoteResponse(BaseModel):
    """Quote response DTO"""
    asset_ref: str
    start: datetime
    end: datetime
    days: int
    pricing: PriceBreakdownResponse
    available: bool = True


class CalendarDayResponse(BaseModel):
    date: date
    available: bool
    price: Decimal
    minimum_stay: int


class RatesResponse(BaseModel):
    """Rate table summary DTO"""
    daily_rate: Decimal
    weekly_rate: Optional[Decimal] = None
    monthly_rate: Optional[Decimal] = None
    deposit: Decimal
    minimum_stay_days: int


class AvailabilityResponse(BaseModel):
    """Availability calendar DTO"""
    asset_ref: str
    days: List[CalendarDayResponse]
    pricing: RatesResponse
