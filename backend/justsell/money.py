# Overview: Integer-cent money helpers; decimals only at input/display boundaries.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

CENT = Decimal("0.01")


def round_half_up(value: Decimal) -> int:
    """Round a Decimal number of cents to a whole cent (0.5 rounds away from zero)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value, field: str = "amount") -> int:
    """
    Convert a decimal dollar amount (str, int, float, Decimal) to integer cents.

    Floats go through str() so 19.99 becomes exactly 1999, not 1998.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return round_half_up(amount * 100)


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_money(cents: int | None, symbol: str = "$") -> str:
    """Fixed-point two decimal display: 1999 -> "$19.99", -5 -> "-$0.05"."""
    if cents is None:
        cents = 0
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{from_cents(abs(cents))}"


def bps_to_rate(bps: int) -> Decimal:
    """Basis points to a Decimal rate: 800 -> Decimal("0.08")."""
    return Decimal(bps) / Decimal(10_000)
