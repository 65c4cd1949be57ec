# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

"""
Customer routes.

Contact fields (email, phone, driver_license_number) are stored encrypted;
responses are built with CustomerRepository.read() so clients see plaintext.
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import PosError
from ..repositories import CustomerRepository
from ..services import customer_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers():
    """Query params: search (name substring), include_inactive, limit (default 20, max 100)."""
    limit = request.args.get("limit", default=20, type=int)
    if limit is None or limit <= 0:
        limit = 20
    repo = CustomerRepository()
    try:
        customers = repo.search(
            request.args.get("search"),
            active_only=request.args.get("include_inactive", "").lower() not in ("1", "true", "yes"),
            limit=min(limit, 100),
        )
        return {"items": [repo.read(c) for c in customers], "count": len(customers)}
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return {"error": "Internal server error"}, 500


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
        return CustomerRepository().read(customer)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load customer")
        return {"error": "Internal server error"}, 500


@customers_bp.post("")
@require_auth
@require_permission("CREATE_CUSTOMER")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(payload)
        return CustomerRepository().read(customer), 201
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("UPDATE_CUSTOMER")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(customer_id, payload)
        return CustomerRepository().read(customer)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500


@customers_bp.post("/<int:customer_id>/loyalty")
@require_auth
@require_permission("UPDATE_CUSTOMER")
def loyalty_route(customer_id: int):
    """Body: {"operation": "earn" | "redeem", "points": 50}"""
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.adjust_loyalty_points(
            customer_id, payload.get("operation"), payload.get("points")
        )
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update loyalty points")
        return {"error": "Internal server error"}, 500

    return {
        "customer_id": customer.id,
        "loyalty_points": customer.loyalty_points,
        "points_lifetime_earned": customer.points_lifetime_earned,
        "points_lifetime_redeemed": customer.points_lifetime_redeemed,
        "loyalty_tier": customer.loyalty_tier,
    }


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("DELETE_CUSTOMER")
def deactivate_customer_route(customer_id: int):
    try:
        customer_service.deactivate_customer(customer_id)
    except PosError as e:
        return e.to_dict(), e.status_code
    return {"ok": True}, 200
