# Overview: Flask API routes for age verification; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import PosError, ValidationError
from ..repositories import AgeVerificationRepository
from ..services import age_verification_service
from ..validation import parse_date, parse_int

age_verification_bp = Blueprint("age_verification", __name__, url_prefix="/api/age-verification")


def _required(payload: dict, key: str):
    value = payload.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required")
    return value


@age_verification_bp.post("")
@require_auth
@require_permission("VERIFY_AGE")
def verify_age_route():
    """
    Record one ID check.

    Request body:
    {
        "id_type": "drivers_license",   // drivers_license | state_id | passport | military_id
        "id_number": "D1234567",
        "date_of_birth": "1990-05-15",
        "id_expiration_date": "2030-05-15",
        "id_issuing_state": "NY",       // optional
        "customer_id": 3,               // optional
        "verification_method": "manual" // manual | scanner | digital
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        customer_id = payload.get("customer_id")
        record, decision = age_verification_service.record_verification(
            employee=g.current_user,
            id_type=_required(payload, "id_type"),
            id_number=str(_required(payload, "id_number")),
            date_of_birth=parse_date(_required(payload, "date_of_birth"), "date_of_birth"),
            id_expiration_date=parse_date(_required(payload, "id_expiration_date"), "id_expiration_date"),
            customer_id=None if customer_id is None else parse_int(customer_id, "customer_id"),
            id_issuing_state=payload.get("id_issuing_state"),
            verification_method=payload.get("verification_method") or "manual",
        )
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record age verification")
        return {"error": "Internal server error"}, 500

    return {
        "verification": AgeVerificationRepository().read(record),
        "is_verified": decision.is_verified,
        "calculated_age": decision.calculated_age,
        "minimum_age": age_verification_service.MINIMUM_AGE,
        "reason_for_denial": decision.reason_for_denial,
        "requires_manager_override": decision.manager_override_eligible,
        "compliance_warnings": list(decision.warnings),
    }, 201


@age_verification_bp.post("/<int:record_id>/override")
@require_auth
@require_permission("OVERRIDE_AGE_VERIFICATION")
def override_route(record_id: int):
    """Body: {"reason": "Customer presented secondary ID"}"""
    payload = request.get_json(silent=True) or {}
    try:
        record = age_verification_service.apply_manager_override(
            record_id, g.current_user, payload.get("reason")
        )
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply age verification override")
        return {"error": "Internal server error"}, 500

    return {"verification": AgeVerificationRepository().read(record)}, 201


@age_verification_bp.get("/history")
@require_auth
@require_permission("VERIFY_AGE")
def history_route():
    """Query params: customer_id (optional), days (default 30)."""
    try:
        customer_id = request.args.get("customer_id")
        days = request.args.get("days")
        records = age_verification_service.get_history(
            customer_id=None if customer_id is None else parse_int(customer_id, "customer_id"),
            days=30 if days is None else parse_int(days, "days"),
        )
    except PosError as e:
        return e.to_dict(), e.status_code

    repo = AgeVerificationRepository()
    return {"items": [repo.read(r) for r in records], "count": len(records)}
