"""Invoice pricing: subtotal, discount and total from line items."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Protocol


class PricedLine(Protocol):
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal


def normalize_discount(rate) -> Decimal:
    """Coerce a discount rate to a non-negative Decimal; junk and negatives become 0."""
    if rate is None or isinstance(rate, bool):
        return Decimal("0")
    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
    if not value.is_finite() or value < 0:
        return Decimal("0")
    return value


def compute(lines: Iterable[PricedLine], discount_rate) -> PriceBreakdown:
    """Price a set of lines.

    No rounding happens here; round to currency minor units at the boundary.
    """
    subtotal = sum((Decimal(line.price) * line.quantity for line in lines), Decimal("0"))
    discount_amount = subtotal * normalize_discount(discount_rate) / 100
    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount_amount,
        total=subtotal - discount_amount,
    )


def totals_match(declared, computed: Decimal, rel_tol: float = 1e-6) -> bool:
    """True when a caller-declared total equals the computed one within ``rel_tol``."""
    try:
        declared = Decimal(str(declared))
    except (InvalidOperation, ValueError, TypeError):
        return False
    if not declared.is_finite():
        return False
    scale = max(abs(declared), abs(computed))
    if scale == 0:
        return True
    return abs(declared - computed) <= scale * Decimal(str(rel_tol))
