# Overview: Service-layer operations for transactions; checkout writer, lookup and pagination.

"""
Transaction writer (checkout).

STATES:
    VALIDATING -> COMMITTING -> COMMITTED
    VALIDATING -> REJECTED      (bad input or policy; nothing written)
    COMMITTING -> ROLLED_BACK   (session rolled back; nothing written)

VALIDATING runs outside any lock: payload, store, customer, an advisory
stock check, the age gate, totals, cash and points. COMMITTING is one DB
transaction that re-reads the products under lock, decrements stock
conditionally, allocates the receipt number, inserts the transaction and
its line items and updates the customer. Lock / version conflicts retry
the whole COMMITTING phase.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum

from flask import current_app

from ..extensions import db
from ..errors import (
    AuthenticationRequiredError,
    InsufficientPointsError,
    NotFoundError,
    PersistenceError,
    PosError,
    ValidationError,
)
from ..models import LineItem, PAYMENT_METHODS, Store, Transaction
from ..money import to_cents
from ..repositories import TransactionRepository
from ..validation import parse_int
from .age_verification_service import assert_cart_verified, requires_verification
from .concurrency import run_with_retry
from .customer_service import get_customer
from .inventory_service import CartItem, check_availability, decrement_stock, validate_cart
from .pricing_service import CheckoutTotals, calculate_totals, get_tax_rate_bps, resolve_tier
from .sequence_service import next_receipt_number
from justsell.time_utils import utcnow

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class TransactionState(str, Enum):
    VALIDATING = "VALIDATING"
    REJECTED = "REJECTED"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"


@dataclass
class CheckoutRequest:
    items: list[CartItem]
    payment_method: str
    cash_tendered_cents: int | None = None
    customer_id: int | None = None
    store_id: int | None = None
    age_verification_completed: bool = False
    age_verification_id: int | None = None
    loyalty_points_redeemed: int = 0
    card_last4: str | None = None
    state: TransactionState = field(default=TransactionState.VALIDATING, compare=False)

    @classmethod
    def from_payload(cls, payload: dict) -> "CheckoutRequest":
        """
        Build from a JSON body. cash_tendered is in dollars (e.g. "60.00");
        it is only read for CASH and card_last4 only for CARD.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        items = validate_cart(payload.get("items"))

        payment_method = str(payload.get("payment_method") or "").strip().upper()
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

        cash_tendered_cents = None
        if payment_method == "CASH":
            if payload.get("cash_tendered") is None:
                raise ValidationError("cash_tendered is required for CASH payments")
            cash_tendered_cents = to_cents(payload["cash_tendered"], "cash_tendered")
            if cash_tendered_cents < 0:
                raise ValidationError("cash_tendered cannot be negative")

        card_last4 = None
        if payment_method == "CARD" and payload.get("card_last4") is not None:
            card_last4 = str(payload["card_last4"]).strip()
            if not re.fullmatch(r"\d{4}", card_last4):
                raise ValidationError("card_last4 must be exactly 4 digits")

        completed = payload.get("age_verification_completed", False)
        if not isinstance(completed, bool):
            raise ValidationError("age_verification_completed must be true or false")

        def _optional_id(key):
            value = payload.get(key)
            return None if value is None else parse_int(value, key)

        redeemed = payload.get("loyalty_points_redeemed") or 0
        return cls(
            items=items,
            payment_method=payment_method,
            cash_tendered_cents=cash_tendered_cents,
            customer_id=_optional_id("customer_id"),
            store_id=_optional_id("store_id"),
            age_verification_completed=completed,
            age_verification_id=_optional_id("age_verification_id"),
            loyalty_points_redeemed=parse_int(redeemed, "loyalty_points_redeemed"),
            card_last4=card_last4,
        )


def _resolve_store(request: CheckoutRequest, employee) -> Store:
    store_id = request.store_id or employee.store_id
    if not store_id:
        raise ValidationError("store_id is required")
    store = db.session.get(Store, store_id)
    if store is None or not store.is_active:
        raise NotFoundError(f"Store {store_id} not found")
    return store


def _totals_for(lines, tax_rate_bps: int, request: CheckoutRequest, customer) -> CheckoutTotals:
    return calculate_totals(
        [(line.product.price_cents, line.quantity) for line in lines],
        tax_rate_bps,
        request.payment_method,
        cash_tendered_cents=request.cash_tendered_cents,
        points_redeemed=request.loyalty_points_redeemed,
        points_balance=customer.loyalty_points if customer is not None else None,
    )


def _validate(request: CheckoutRequest, employee):
    store = _resolve_store(request, employee)

    customer = None
    if request.customer_id is not None:
        customer = get_customer(request.customer_id, active_only=True)
    if request.loyalty_points_redeemed and customer is None:
        raise ValidationError("Redeeming loyalty points requires a customer")

    # Advisory; repeated under lock when committing
    lines = check_availability(request.items)

    requires = requires_verification(line.product for line in lines)
    assert_cart_verified(requires, request.age_verification_completed, request.age_verification_id)

    totals = _totals_for(lines, get_tax_rate_bps(store), request, customer)
    return store, customer, requires, totals


def create_transaction(request: CheckoutRequest, employee) -> Transaction:
    """
    Validate and atomically record a checkout.

    Raises PosError subclasses for rejected input or policy (nothing
    written), and PersistenceError if the commit itself fails.
    """
    if employee is None:
        raise AuthenticationRequiredError("Employee authentication required")

    request.state = TransactionState.VALIDATING
    try:
        store, customer, requires, totals = _validate(request, employee)
    except PosError:
        request.state = TransactionState.REJECTED
        raise

    repo = TransactionRepository()
    tax_rate_bps = totals.tax_rate_bps
    customer_id = customer.id if customer is not None else None

    def _commit() -> Transaction:
        now = utcnow()
        lines = check_availability(request.items, lock=True)
        current_customer = get_customer(customer_id) if customer_id is not None else None
        final = _totals_for(lines, tax_rate_bps, request, current_customer)

        for line in lines:
            decrement_stock(line.product.id, line.quantity)

        points_earned = final.points_earned if current_customer is not None else 0

        transaction = repo.create(
            receipt_number=next_receipt_number(store.id, now),
            store_id=store.id,
            customer_id=customer_id,
            employee_id=employee.id,
            subtotal_cents=final.subtotal_cents,
            tax_cents=final.tax_cents,
            total_cents=final.total_cents,
            tax_rate_bps=final.tax_rate_bps,
            payment_method=request.payment_method,
            payment_status="COMPLETED",
            cash_tendered_cents=final.cash_tendered_cents,
            change_given_cents=final.change_cents,
            card_last4=request.card_last4,
            age_verification_required=requires,
            age_verification_completed=bool(requires and request.age_verification_completed),
            age_verification_id=request.age_verification_id,
            loyalty_points_earned=points_earned,
            loyalty_points_redeemed=final.points_redeemed,
            transaction_date=now,
        )
        db.session.flush()

        for line in lines:
            product = line.product
            db.session.add(LineItem(
                transaction_id=transaction.id,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=line.quantity,
                unit_price_cents=product.price_cents,
                line_total_cents=product.price_cents * line.quantity,
                age_verification_required=product.age_restricted,
                lot_number=product.lot_number,
                expiration_date=product.expiration_date,
            ))

        if current_customer is not None:
            _apply_customer_updates(current_customer, final, points_earned, now)
            transaction.loyalty_balance_after = current_customer.loyalty_points

        db.session.commit()
        return transaction

    request.state = TransactionState.COMMITTING
    try:
        transaction = run_with_retry(_commit)
    except PosError:
        db.session.rollback()
        request.state = TransactionState.ROLLED_BACK
        raise
    except Exception as exc:
        db.session.rollback()
        request.state = TransactionState.ROLLED_BACK
        current_app.logger.exception("Checkout commit failed")
        raise PersistenceError("Failed to process transaction", cause=exc) from exc

    request.state = TransactionState.COMMITTED
    current_app.logger.info(
        "Transaction committed: receipt=%s total_cents=%s employee=%s",
        transaction.receipt_number, transaction.total_cents, employee.id,
    )
    return transaction


def _apply_customer_updates(customer, totals: CheckoutTotals, points_earned: int, now) -> None:
    balance = customer.loyalty_points + points_earned - totals.points_redeemed
    if balance < 0:
        raise InsufficientPointsError(
            f"Insufficient loyalty points. Available: {customer.loyalty_points}, Requested: {totals.points_redeemed}",
            details={"available": customer.loyalty_points, "requested": totals.points_redeemed},
        )
    customer.loyalty_points = balance
    customer.points_lifetime_earned += points_earned
    customer.points_lifetime_redeemed += totals.points_redeemed
    customer.total_spent_cents += totals.total_cents
    customer.transaction_count += 1
    customer.last_purchase_at = now
    customer.loyalty_tier = resolve_tier(customer.total_spent_cents)


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def get_transaction_by_receipt(receipt_number: str) -> Transaction:
    transaction = db.session.query(Transaction).filter_by(receipt_number=receipt_number).first()
    if transaction is None:
        raise NotFoundError(f"Transaction {receipt_number} not found")
    return transaction


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def take(self) -> int:
        return self.limit

    def to_dict(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def _positive_int_or_default(raw, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_pagination(raw_page, raw_limit) -> tuple[int, int]:
    """
    Query-string page/limit. Missing, non-numeric or non-positive values
    fall back to 1 / 20; a limit above 100 is rejected.
    """
    page = _positive_int_or_default(raw_page, DEFAULT_PAGE)
    limit = _positive_int_or_default(raw_limit, DEFAULT_LIMIT)
    if limit > MAX_LIMIT:
        raise ValidationError(f"limit cannot exceed {MAX_LIMIT}")
    return page, limit


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total)


def list_transactions(page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> tuple[list[Transaction], Pagination]:
    base = db.session.query(Transaction)
    pagination = paginate(page, limit, base.count())
    rows = (
        base.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        .offset(pagination.skip)
        .limit(pagination.take)
        .all()
    )
    return rows, pagination
