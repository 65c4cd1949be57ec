# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/justsell/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission

Prices may be sent either as price_cents (integer) or price (decimal
dollars, e.g. "19.99").
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import PosError
from ..money import to_cents
from ..services import inventory_service
from ..validation import parse_int

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_payload() -> dict:
    payload = dict(request.get_json(silent=True) or {})
    if "price" in payload:
        payload["price_cents"] = to_cents(payload.pop("price"), "price")
    return payload


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    Query params:
    - search: str (optional) - name or SKU substring
    - low_stock: bool (optional) - only products at or below the reorder threshold
    - include_inactive: bool (optional)
    """
    truthy = ("1", "true", "yes")
    products = inventory_service.list_products(
        search=request.args.get("search"),
        low_stock=request.args.get("low_stock", "").lower() in truthy,
        include_inactive=request.args.get("include_inactive", "").lower() in truthy,
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(product_id: int):
    try:
        return inventory_service.get_product(product_id).to_dict()
    except PosError as e:
        return e.to_dict(), e.status_code


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    try:
        product = inventory_service.create_product(_product_payload())
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    try:
        product = inventory_service.update_product(product_id, _product_payload())
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return product.to_dict()


@products_bp.patch("/<int:product_id>/stock")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def adjust_stock_route(product_id: int):
    """
    Body: {"quantity_delta": -3}  (positive to add, negative to remove)
    """
    payload = request.get_json(silent=True) or {}
    try:
        if payload.get("quantity_delta") is None:
            return {"error": "quantity_delta is required"}, 400
        delta = parse_int(payload["quantity_delta"], "quantity_delta")
        product = inventory_service.adjust_stock(product_id, delta)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Stock adjusted: product=%s delta=%s", product_id, delta)
    return product.to_dict()
