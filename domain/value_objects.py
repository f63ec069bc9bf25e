"""Domain Value Objects"""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from domain.enums import InsuranceTier, LocationType

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Interval(BaseModel):
    """Half-open time range [start, end)"""
    start: datetime
    end: datetime

    @field_validator('start', 'end')
    def normalize_timezone(cls, v):
        return as_utc(v)

    @field_validator('end')
    def end_after_start(cls, v, info):
        start = info.data.get('start')
        if start is not None and v <= start:
            raise ValueError('End must be after start')
        return v

    @classmethod
    def for_day(cls, day: date) -> "Interval":
        """The whole calendar day [00:00, next 00:00) in UTC"""
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        return cls(start=start, end=start + ONE_DAY)

    def duration_days(self) -> int:
        """Whole days covered, rounding any partial day up"""
        return -((self.start - self.end) // ONE_DAY)

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    class Config:
        frozen = True


class RentalTerms(BaseModel):
    """Rate table and constraints projected from the listing catalog"""
    daily_rate: Decimal = Field(gt=0)
    weekly_rate: Optional[Decimal] = Field(default=None, gt=0)
    monthly_rate: Optional[Decimal] = Field(default=None, gt=0)
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    minimum_stay_days: int = Field(default=1, ge=1)
    available_for_rent: bool = True

    class Config:
        frozen = True


class AssetListing(BaseModel):
    """Catalog entry for a rentable asset"""
    asset_ref: str
    owner_ref: str
    terms: RentalTerms

    class Config:
        frozen = True


class PriceBreakdown(BaseModel):
    """Itemized price of a rental; every amount has 2 decimal places"""
    daily_rate: Decimal
    weekly_rate: Optional[Decimal] = None
    monthly_rate: Optional[Decimal] = None
    total_days: int = Field(ge=1)
    base_price: Decimal
    insurance_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    deposit: Decimal
    total_price: Decimal
    currency: str = Field(min_length=3, max_length=3)

    @model_validator(mode='after')
    def total_is_sum_of_components(self):
        components = self.base_price + self.insurance_fee + self.service_fee + self.taxes
        if self.total_price != components:
            raise ValueError('Total price must equal the sum of its components')
        return self

    class Config:
        frozen = True


class Location(BaseModel):
    """Pickup or drop-off point"""
    location_type: LocationType = LocationType.DEALERSHIP
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    instructions: Optional[str] = None
    fee: Decimal = Field(default=Decimal("0"), ge=0)

    class Config:
        frozen = True


class CancellationRecord(BaseModel):
    reason: Optional[str] = None
    cancelled_by: str
    cancelled_at: datetime

    class Config:
        frozen = True


class PaymentRecord(BaseModel):
    transaction_id: Optional[str] = None
    paid_at: datetime

    class Config:
        frozen = True


def coerce_tier(tier) -> Optional[InsuranceTier]:
    """Map a raw tier to InsuranceTier, None when unknown"""
    if isinstance(tier, InsuranceTier):
        return tier
    try:
        return InsuranceTier(str(tier).lower())
    except ValueError:
        return None
