"""
Currency helpers.

All money is Decimal with two places; floats never reach the database.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value, *, field: str = "amount") -> Decimal:
    """Coerce an int/float/str/Decimal into a 2-place Decimal."""
    from .errors import ValidationError

    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent) -> Decimal:
    """amount * percent / 100, rounded half-up to the cent."""
    pct = Decimal(str(percent))
    return (amount * pct / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def money_json(amount: Decimal | None) -> float | None:
    if amount is None:
        return None
    return float(Decimal(amount).quantize(CENT))
