# Overview: Booking price calculation from facility rates.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..validation import MAX_AMOUNT, ValidationError
from .facility_policies import FacilityPolicy


@dataclass
class Quote:
    total: int
    unit_prices: dict[int, int] = field(default_factory=dict)
    overridden: bool = False


def price(policy: FacilityPolicy, facility, pricing_type: str, unit_count: int) -> int:
    """
    Price of one facility unit for unit_count nights / days / slots.

    Raises ValidationError for a pricing type the facility type does not offer.
    """
    pricing_type = policy.validate_pricing_type(pricing_type)
    if unit_count < 0:
        raise ValidationError("Unit count cannot be negative")
    return policy.rate_for(facility, pricing_type) * unit_count


def quote(
    policy: FacilityPolicy,
    facilities: list,
    pricing_type: str,
    unit_count: int,
    override: Optional[int] = None,
) -> Quote:
    """
    Total for a multi-unit request.

    unit_prices always carries the computed per-unit price (stored as
    price_at_booking). An explicit caller total replaces the computed total.
    """
    unit_prices = {f.id: price(policy, f, pricing_type, unit_count) for f in facilities}
    computed = sum(unit_prices.values())
    if computed > MAX_AMOUNT:
        raise ValidationError(f"Total price cannot exceed {MAX_AMOUNT}")

    if override is not None:
        return Quote(total=override, unit_prices=unit_prices, overridden=True)
    return Quote(total=computed, unit_prices=unit_prices)


def required_advance(room_count: int, total: int) -> int:
    """
    Advance a room booking must carry before it is confirmed.

    1-2 rooms: 25%, 3-5 rooms: 50%, 6 or more: 75% (rounded half up).
    """
    if room_count <= 0 or total <= 0:
        return 0
    if room_count <= 2:
        percent = 25
    elif room_count <= 5:
        percent = 50
    else:
        percent = 75
    return (total * percent + 50) // 100
