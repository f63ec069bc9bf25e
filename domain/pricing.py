"""Rental pricing.

Tier selection is greedy, longest unit first: a 31-day rental with a monthly
rate is charged two months even when weeks would be cheaper. That rule is kept
as the published pricing policy.
"""
import math
from decimal import Decimal, ROUND_HALF_UP

from domain.enums import InsuranceTier
from domain.value_objects import PriceBreakdown, RentalTerms, coerce_tier

CENT = Decimal("0.01")

INSURANCE_RATES = {
    InsuranceTier.BASIC: Decimal("0"),
    InsuranceTier.STANDARD: Decimal("0.10"),
    InsuranceTier.PREMIUM: Decimal("0.15"),
    InsuranceTier.COMPREHENSIVE: Decimal("0.20"),
}
SERVICE_FEE_RATE = Decimal("0.05")
TAX_RATE = Decimal("0.08")

MONTH_DAYS = 30
WEEK_DAYS = 7


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def base_price(duration_days: int, terms: RentalTerms) -> Decimal:
    """Price before fees, using the longest rate unit the duration reaches"""
    if duration_days >= MONTH_DAYS and terms.monthly_rate:
        return terms.monthly_rate * math.ceil(duration_days / MONTH_DAYS)
    if duration_days >= WEEK_DAYS and terms.weekly_rate:
        return terms.weekly_rate * math.ceil(duration_days / WEEK_DAYS)
    return terms.daily_rate * duration_days


def insurance_rate(tier) -> Decimal:
    return INSURANCE_RATES.get(coerce_tier(tier), Decimal("0"))


def quote(duration_days: int, terms: RentalTerms, insurance_tier, currency: str = "USD") -> PriceBreakdown:
    """Itemized price for renting an asset for duration_days.

    Fees and taxes are computed from unrounded amounts; each component is
    then rounded to cents on its own and the total is the sum of the rounded
    components. Minimum stay is the caller's concern.
    """
    base = base_price(duration_days, terms)
    insurance_fee = base * insurance_rate(insurance_tier)
    service_fee = base * SERVICE_FEE_RATE
    taxes = (base + insurance_fee + service_fee) * TAX_RATE

    base, insurance_fee, service_fee, taxes = (
        round_money(base), round_money(insurance_fee), round_money(service_fee), round_money(taxes)
    )

    return PriceBreakdown(
        daily_rate=terms.daily_rate,
        weekly_rate=terms.weekly_rate,
        monthly_rate=terms.monthly_rate,
        total_days=duration_days,
        base_price=base,
        insurance_fee=insurance_fee,
        service_fee=service_fee,
        taxes=taxes,
        deposit=round_money(terms.deposit_amount),
        total_price=base + insurance_fee + service_fee + taxes,
        currency=currency,
    )
