# Overview: Flask API routes for transaction operations; parses input and returns JSON responses.

"""
Checkout and transaction routes.

POST /api/transactions            create (CREATE_TRANSACTION)
GET  /api/transactions            list, newest first (VIEW_TRANSACTIONS)
GET  /api/transactions/<id>       detail with line items (VIEW_TRANSACTIONS)
GET  /api/transactions/<id>/receipt  receipt JSON + text + html (VIEW_TRANSACTIONS)
POST /api/transactions/<id>/print    send receipt to printer (CREATE_TRANSACTION)
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import PosError
from ..repositories import TransactionRepository
from ..services import receipt_service, transaction_service
from ..services.transaction_service import CheckoutRequest
from justsell.time_utils import to_utc_z

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
@require_permission("CREATE_TRANSACTION")
def create_transaction_route():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "CASH",          // CASH | CARD | GIFT_CARD
        "cash_tendered": "60.00",          // required for CASH
        "card_last4": "4242",              // optional, CARD only
        "customer_id": 7,                  // optional
        "store_id": 1,                     // optional, defaults to employee's store
        "age_verification_completed": true,
        "age_verification_id": 12,         // optional
        "loyalty_points_redeemed": 0       // optional, requires customer_id
    }
    """
    payload = request.get_json(silent=True)
    try:
        checkout = CheckoutRequest.from_payload(payload if payload is not None else {})
        transaction = transaction_service.create_transaction(checkout, g.current_user)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return {"error": "Internal server error"}, 500

    return {
        "message": "Transaction completed successfully",
        "transaction": TransactionRepository().read(transaction, include_lines=True),
    }, 201


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def list_transactions_route():
    try:
        page, limit = transaction_service.parse_pagination(
            request.args.get("page"), request.args.get("limit")
        )
        rows, pagination = transaction_service.list_transactions(page, limit)
    except PosError as e:
        return e.to_dict(), e.status_code

    repo = TransactionRepository()
    return {
        "transactions": [repo.read(t) for t in rows],
        "pagination": pagination.to_dict(),
    }


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id)
        return TransactionRepository().read(transaction, include_lines=True)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return {"error": "Internal server error"}, 500


@transactions_bp.get("/<int:transaction_id>/receipt")
@require_auth
@require_permission("VIEW_TRANSACTIONS")
def receipt_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id)
        receipt = receipt_service.build_receipt(transaction)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to generate receipt")
        return {"error": "Failed to generate receipt"}, 500

    data = receipt.to_dict()
    data["text"] = receipt_service.format_receipt_text(
        receipt, width=current_app.config.get("RECEIPT_WIDTH", 40)
    )
    data["html"] = receipt_service.format_receipt_html(receipt)
    return data


@transactions_bp.post("/<int:transaction_id>/print")
@require_auth
@require_permission("CREATE_TRANSACTION")
def print_receipt_route(transaction_id: int):
    try:
        printed_at = receipt_service.print_receipt(transaction_id)
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to print receipt")
        return {"error": "Failed to print receipt"}, 500

    return {
        "message": "Receipt sent to printer",
        "transaction_id": transaction_id,
        "printed_at": to_utc_z(printed_at),
    }
