"""
Booking price calculation: promo code discounts and the platform fee split.
All amounts are integer minor currency units.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.models.event import Event
from app.models.promo_code import PromoCode


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def find_applicable_promo(db: Session, code: str, event: Event, now: Optional[datetime] = None) -> Optional[PromoCode]:
    """Active promo for `code` valid right now, scoped to the event or global, with uses left."""
    now = now or datetime.utcnow()
    promo = db.query(PromoCode).filter(
        PromoCode.code == code.upper(),
        PromoCode.is_active.is_(True),
        PromoCode.valid_from <= now,
        PromoCode.valid_until >= now,
        or_(PromoCode.event_id == event.id, PromoCode.event_id.is_(None)),
    ).first()
    if promo is None:
        return None
    if promo.usage_limit and promo.used_count >= promo.usage_limit:
        return None
    return promo


def compute_discount(amount: int, promo: PromoCode) -> int:
    if promo.discount_type == "percentage":
        discount = round_half_up(Decimal(amount) * Decimal(str(promo.discount_value)) / Decimal(100))
        if promo.max_discount_amount:
            discount = min(discount, promo.max_discount_amount)
        return discount
    return round_half_up(promo.discount_value)


def apply_discount(amount: int, promo: Optional[PromoCode]) -> Tuple[int, int]:
    """Returns (amount after discount, discount amount). The charged amount never goes below 0."""
    if promo is None:
        return amount, 0
    discount = compute_discount(amount, promo)
    return max(0, amount - discount), discount


def split_platform_fee(amount: int, fee_percent: float) -> Tuple[int, int]:
    """Returns (platform fee, organizer revenue)."""
    fee = round_half_up(Decimal(amount) * Decimal(str(fee_percent)) / Decimal(100))
    return fee, amount - fee
