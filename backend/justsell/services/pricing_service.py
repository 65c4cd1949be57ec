# Overview: Service-layer operations for pricing; pure tax, change and loyalty arithmetic.

"""
Tax / loyalty calculator.

Pure functions over integer cents. Nothing here touches the database, so
the checkout can compute totals before taking any lock and tests can
exercise the arithmetic directly.

ROUNDING: tax is computed in Decimal and rounded half-up to the cent once,
on the subtotal (not per line).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..errors import InsufficientCashError, InsufficientPointsError, ValidationError
from ..models import PAYMENT_METHODS
from ..money import bps_to_rate, round_half_up

DEFAULT_TIER_THRESHOLDS = (
    ("BRONZE", 0),
    ("SILVER", 50_000),
    ("GOLD", 200_000),
    ("PLATINUM", 500_000),
)


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    tax_rate_bps: int
    cash_tendered_cents: int | None
    change_cents: int | None
    points_earned: int
    points_redeemed: int


def line_total_cents(unit_price_cents: int, quantity: int) -> int:
    if quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    if unit_price_cents < 0:
        raise ValidationError("unit price cannot be negative")
    return unit_price_cents * quantity


def calculate_tax_cents(subtotal_cents: int, rate_bps: int) -> int:
    """Tax on a subtotal at rate_bps basis points (800 = 8%), half-up."""
    if rate_bps < 0:
        raise ValidationError("tax rate cannot be negative")
    return round_half_up(Decimal(subtotal_cents) * bps_to_rate(rate_bps))


def loyalty_points_earned(total_cents: int) -> int:
    """One point per whole dollar of the total."""
    return max(total_cents, 0) // 100


def calculate_totals(
    lines: Iterable[tuple[int, int]],
    tax_rate_bps: int,
    payment_method: str,
    cash_tendered_cents: int | None = None,
    points_redeemed: int = 0,
    points_balance: int | None = None,
) -> CheckoutTotals:
    """
    Compute checkout money from (unit_price_cents, quantity) pairs.

    Raises:
        ValidationError: unknown payment method, missing cash, negative points
        InsufficientCashError: CASH tendered below total
        InsufficientPointsError: redeeming more than points_balance

    Redeemed points are recorded against the customer only; they do not
    reduce the amount due.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

    subtotal = sum(line_total_cents(price, qty) for price, qty in lines)
    tax = calculate_tax_cents(subtotal, tax_rate_bps)
    total = subtotal + tax

    tendered = None
    change = None
    if payment_method == "CASH":
        if cash_tendered_cents is None:
            raise ValidationError("cash_tendered is required for CASH payments")
        if cash_tendered_cents < total:
            raise InsufficientCashError(
                "Insufficient cash tendered",
                details={"total_cents": total, "cash_tendered_cents": cash_tendered_cents},
            )
        tendered = cash_tendered_cents
        change = cash_tendered_cents - total

    points_redeemed = points_redeemed or 0
    if points_redeemed < 0:
        raise ValidationError("loyalty_points_redeemed cannot be negative")
    if points_redeemed and points_balance is not None and points_redeemed > points_balance:
        raise InsufficientPointsError(
            f"Insufficient loyalty points. Available: {points_balance}, Requested: {points_redeemed}",
            details={"available": points_balance, "requested": points_redeemed},
        )

    return CheckoutTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=total,
        tax_rate_bps=tax_rate_bps,
        cash_tendered_cents=tendered,
        change_cents=change,
        points_earned=loyalty_points_earned(total),
        points_redeemed=points_redeemed,
    )


def resolve_tier(total_spent_cents: int, thresholds=None) -> str:
    """Highest tier whose minimum lifetime spend has been reached."""
    if thresholds is None:
        thresholds = current_app.config.get("LOYALTY_TIER_THRESHOLDS", DEFAULT_TIER_THRESHOLDS)
    tier = thresholds[0][0]
    for name, minimum_cents in thresholds:
        if total_spent_cents >= minimum_cents:
            tier = name
    return tier


def get_tax_rate_bps(store) -> int:
    """Store override, else DEFAULT_TAX_RATE_BPS from config."""
    if store is not None and store.tax_rate_bps is not None:
        return store.tax_rate_bps
    return int(current_app.config.get("DEFAULT_TAX_RATE_BPS", 800))
