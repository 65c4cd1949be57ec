# Overview: Service-layer operations for customers; profile maintenance and loyalty adjustments.

from __future__ import annotations

from ..extensions import db
from ..errors import InsufficientPointsError, NotFoundError, ValidationError
from ..models import Customer
from ..repositories import CustomerRepository
from ..validation import parse_int, validate_customer_payload
from .concurrency import run_with_retry
from .pricing_service import resolve_tier

LOYALTY_OPERATIONS = ("earn", "redeem")


def get_customer(customer_id: int, *, active_only: bool = False) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None or (active_only and not customer.is_active):
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def create_customer(payload: dict) -> Customer:
    patch = validate_customer_payload(payload, partial=False)
    customer = CustomerRepository().create(**patch)
    db.session.commit()
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    patch = validate_customer_payload(payload, partial=True)
    repo = CustomerRepository()

    def _op():
        customer = get_customer(customer_id)
        repo.update(customer, **patch)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def adjust_loyalty_points(customer_id: int, operation: str, points) -> Customer:
    """
    Manual loyalty adjustment outside a sale.

    earn adds to balance and lifetime earned; redeem subtracts from balance
    (never below zero) and adds to lifetime redeemed.
    """
    if operation not in LOYALTY_OPERATIONS:
        raise ValidationError(f"operation must be one of {', '.join(LOYALTY_OPERATIONS)}")
    points = parse_int(points, "points")
    if points <= 0:
        raise ValidationError("Points must be a positive number")

    def _op():
        customer = get_customer(customer_id)
        if operation == "earn":
            customer.loyalty_points += points
            customer.points_lifetime_earned += points
        else:
            if customer.loyalty_points < points:
                raise InsufficientPointsError(
                    f"Insufficient points. Customer has {customer.loyalty_points} points.",
                    details={"available": customer.loyalty_points, "requested": points},
                )
            customer.loyalty_points -= points
            customer.points_lifetime_redeemed += points
        customer.loyalty_tier = resolve_tier(customer.total_spent_cents)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def deactivate_customer(customer_id: int) -> Customer:
    """Soft delete; past transactions keep pointing at the row."""
    def _op():
        customer = get_customer(customer_id)
        customer.is_active = False
        db.session.commit()
        return customer

    return run_with_retry(_op)
