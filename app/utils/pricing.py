import math

from app.core.config import settings


def round_half_up(value: float) -> int:
    """Round .5 upwards (``round()`` would round half to even)."""
    return int(math.floor(value + 0.5))


def empty_breakdown() -> dict:
    return {
        "basePrice": 0,
        "subtotal": 0,
        "tax": 0,
        "serviceFee": 0,
        "promoOff": 0,
        "total": 0,
    }


def calculate_booking_price(
    base_price: float,
    participants: int,
    promo_off: float = 0,
    tax_rate: float | None = None,
    service_fee_rate: float | None = None,
) -> dict:
    """Return the pricing breakdown for ``participants`` seats at ``base_price``.

    Tax and service fee are rounded separately before they are added, so the
    displayed lines always sum to the charged total.
    """
    if base_price < 0:
        raise ValueError("base_price must be non-negative")
    if participants < 1:
        raise ValueError("participants must be at least 1")
    if promo_off < 0:
        raise ValueError("promo_off must be non-negative")

    tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate
    service_fee_rate = settings.SERVICE_FEE_RATE if service_fee_rate is None else service_fee_rate

    subtotal = base_price * participants
    tax = round_half_up(subtotal * tax_rate)
    service_fee = round_half_up(subtotal * service_fee_rate)
    total = max(0, subtotal + tax + service_fee - promo_off)

    return {
        "basePrice": base_price,
        "subtotal": subtotal,
        "tax": tax,
        "serviceFee": service_fee,
        "promoOff": promo_off,
        "total": total,
    }


def resolve_base_price(item) -> float:
    """Price of an activity/place, falling back to the configured default."""
    return item.price or item.base_price or settings.DEFAULT_BASE_PRICE
