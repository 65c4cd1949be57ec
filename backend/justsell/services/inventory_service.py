# Overview: Service-layer operations for inventory; stock checks, decrements and product maintenance.

"""
Inventory guard.

INVARIANTS:
- products.quantity never goes below zero (CHECK constraint + conditional UPDATE)
- check_availability validates every cart line before reporting success
  and never writes
- a failed checkout leaves every quantity untouched

Stock decrements are a single conditional UPDATE
(quantity = quantity - q WHERE quantity >= q), so two concurrent sales of
the last unit cannot both succeed even when the database ignores
SELECT ... FOR UPDATE.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..models import Product
from ..validation import parse_int, validate_product_payload
from .concurrency import lock_for_update

LOW_STOCK_THRESHOLD = 10


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ResolvedLine:
    product: Product
    quantity: int


def validate_cart(raw_items) -> list[CartItem]:
    """
    Normalize a request's items list.

    Each entry needs product_id and a positive integer quantity. An empty
    cart is rejected.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Cart must contain at least one item")

    items: list[CartItem] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        product_id = parse_int(raw.get("product_id"), f"items[{index}].product_id")
        quantity = parse_int(raw.get("quantity"), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        items.append(CartItem(product_id=product_id, quantity=quantity))
    return items


def _merge(cart_items: list[CartItem]) -> dict[int, int]:
    # Same product on two lines counts against stock once, in cart order
    merged: dict[int, int] = {}
    for item in cart_items:
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    return merged


def check_availability(cart_items: list[CartItem], *, lock: bool = False) -> list[ResolvedLine]:
    """
    Resolve every cart product and confirm on-hand covers the request.

    Raises NotFoundError for a missing/inactive product and
    InsufficientStockError for the first short line. Read-only.
    """
    merged = _merge(cart_items)

    query = db.session.query(Product).filter(Product.id.in_(list(merged)))
    if lock:
        query = lock_for_update(query.order_by(Product.id))
    products = {p.id: p for p in query.all()}

    lines: list[ResolvedLine] = []
    for product_id, quantity in merged.items():
        product = products.get(product_id)
        if product is None or not product.is_active:
            raise NotFoundError(
                f"Product {product_id} not found", details={"product_id": product_id}
            )
        if product.quantity < quantity:
            raise _insufficient(product, quantity)
        lines.append(ResolvedLine(product=product, quantity=quantity))
    return lines


def _insufficient(product: Product, requested: int) -> InsufficientStockError:
    return InsufficientStockError(
        f"Insufficient stock for {product.name}. Available: {product.quantity}, Requested: {requested}",
        details={
            "product_id": product.id,
            "product_name": product.name,
            "available": product.quantity,
            "requested": requested,
        },
    )


def decrement_stock(product_id: int, quantity: int) -> None:
    """
    Conditionally remove quantity from on-hand (caller commits).

    Zero rows updated means another sale got there first.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be a positive integer")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
        db.session.refresh(product)
        raise _insufficient(product, quantity)


def adjust_stock(product_id: int, delta: int) -> Product:
    """Manager stock correction (positive receive, negative write-off)."""
    if delta == 0:
        raise ValidationError("quantity_delta must be non-zero")

    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")

    new_quantity = product.quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Adjustment would make stock negative for {product.name}",
            details={"product_id": product.id, "available": product.quantity, "delta": delta},
        )
    product.quantity = new_quantity
    db.session.commit()
    return product


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(
    *,
    search: str | None = None,
    low_stock: bool = False,
    include_inactive: bool = False,
) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if low_stock:
        query = query.filter(Product.quantity <= LOW_STOCK_THRESHOLD)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(payload: dict) -> Product:
    patch = validate_product_payload(payload, partial=False)
    if db.session.query(Product.id).filter_by(sku=patch["sku"]).first():
        raise ConflictError(f"SKU {patch['sku']!r} already exists")

    product = Product(**patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"SKU {patch['sku']!r} already exists")
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    patch = validate_product_payload(payload, partial=True)

    new_sku = patch.get("sku")
    if new_sku and new_sku != product.sku:
        if db.session.query(Product.id).filter_by(sku=new_sku).first():
            raise ConflictError(f"SKU {new_sku!r} already exists")

    for key, value in patch.items():
        setattr(product, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product update conflicts with an existing row")
    return product
