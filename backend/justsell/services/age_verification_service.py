# Overview: Service-layer operations for age verification; ID checks, records and manager overrides.

"""
Age-verification gate for tobacco / vape sales.

Decision table (first matching row wins):

    ID expired (expiration < verification date) -> DENIED, no override
    age < 18                                     -> DENIED, no override
    18 <= age < 21                               -> DENIED, override eligible
    age >= 21                                    -> VERIFIED

Records are insert-only. A manager override adds a new OVERRIDDEN record
that points at the denied one; the denied record is never changed.
Date of birth is used to compute the age and is not stored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..errors import (
    AgeVerificationDeniedError,
    AgeVerificationRequiredError,
    NotFoundError,
    OverrideNotAllowedError,
    ValidationError,
)
from ..models import AgeVerificationRecord, Customer, ID_TYPES, VERIFICATION_METHODS
from ..repositories import AgeVerificationRepository
from .permission_service import log_security_event, require_permission
from justsell.time_utils import today, utcnow

MINIMUM_AGE = 21
ADULT_AGE = 18

EXPIRED_ID_REASON = "Expired identification document"
VERIFICATION_REQUIRED_MESSAGE = "Age verification required for restricted products"


@dataclass(frozen=True)
class VerificationDecision:
    outcome: str
    calculated_age: int
    reason_for_denial: str | None = None
    manager_override_eligible: bool = False
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_verified(self) -> bool:
        return self.outcome == "VERIFIED"


def calculate_age(date_of_birth: date, on_date: date | None = None) -> int:
    """Full years, counting the birthday itself as reached."""
    on_date = on_date or today()
    age = on_date.year - date_of_birth.year
    if (on_date.month, on_date.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def requires_verification(products) -> bool:
    return any(p.age_restricted for p in products)


def evaluate(date_of_birth: date, id_expiration_date: date, on_date: date | None = None) -> VerificationDecision:
    on_date = on_date or today()
    if date_of_birth > on_date:
        raise ValidationError("date_of_birth cannot be in the future")

    age = calculate_age(date_of_birth, on_date)
    expired = id_expiration_date < on_date

    warnings = []
    if expired:
        warnings.append("ID has expired")
    if age < ADULT_AGE:
        warnings.append(f"Customer is under {ADULT_AGE}")
    elif age < MINIMUM_AGE:
        warnings.append(f"Customer is under {MINIMUM_AGE} (tobacco age restriction)")

    if expired:
        return VerificationDecision("DENIED", age, EXPIRED_ID_REASON, False, tuple(warnings))

    if age < MINIMUM_AGE:
        return VerificationDecision(
            "DENIED",
            age,
            f"Customer age ({age}) is below minimum age requirement ({MINIMUM_AGE})",
            age >= ADULT_AGE,
            tuple(warnings),
        )

    return VerificationDecision("VERIFIED", age, warnings=tuple(warnings))


def normalize_id_number(id_number: str) -> str:
    return re.sub(r"\s+", "", id_number or "").upper()


def validate_id_format(id_type: str, id_number: str) -> str:
    """
    Check the document number shape for its type; returns the normalized number.

    drivers_license / state_id: 6-15 chars, passport: exactly 9 letters or
    digits, military_id: 8-12 chars.
    """
    if id_type not in ID_TYPES:
        raise ValidationError(f"id_type must be one of {', '.join(ID_TYPES)}")

    clean = normalize_id_number(id_number)
    if id_type in ("drivers_license", "state_id"):
        valid = 6 <= len(clean) <= 15
    elif id_type == "passport":
        valid = re.fullmatch(r"[A-Z0-9]{9}", clean) is not None
    else:
        valid = 8 <= len(clean) <= 12

    if not valid:
        raise ValidationError(f"Invalid {id_type} number format", details={"id_type": id_type})
    return clean


def record_verification(
    *,
    employee,
    id_type: str,
    id_number: str,
    date_of_birth: date,
    id_expiration_date: date,
    customer_id: int | None = None,
    id_issuing_state: str | None = None,
    verification_method: str = "manual",
    store_id: int | None = None,
    on_date: date | None = None,
) -> tuple[AgeVerificationRecord, VerificationDecision]:
    """Evaluate one ID presentation and store the outcome (commits)."""
    if verification_method not in VERIFICATION_METHODS:
        raise ValidationError(
            f"verification_method must be one of {', '.join(VERIFICATION_METHODS)}"
        )
    clean_number = validate_id_format(id_type, id_number)

    store_id = store_id or employee.store_id
    if not store_id:
        raise ValidationError("store_id is required")

    if customer_id is not None and db.session.get(Customer, customer_id) is None:
        raise NotFoundError(f"Customer {customer_id} not found")

    if id_issuing_state:
        id_issuing_state = id_issuing_state.strip().upper()
        if len(id_issuing_state) != 2:
            raise ValidationError("id_issuing_state must be a 2-letter state code")

    decision = evaluate(date_of_birth, id_expiration_date, on_date)

    record = AgeVerificationRepository().create(
        customer_id=customer_id,
        id_type=id_type,
        id_number=clean_number,
        id_issuing_state=id_issuing_state or None,
        id_expiration_date=id_expiration_date,
        calculated_age=decision.calculated_age,
        verification_method=verification_method,
        outcome=decision.outcome,
        reason_for_denial=decision.reason_for_denial,
        manager_override_eligible=decision.manager_override_eligible,
        employee_id=employee.id,
        store_id=store_id,
        created_at=utcnow(),
    )
    db.session.commit()

    current_app.logger.info(
        "Age verification %s: record=%s age=%s employee=%s",
        decision.outcome, record.id, decision.calculated_age, employee.id,
    )
    return record, decision


def apply_manager_override(record_id: int, manager, reason: str) -> AgeVerificationRecord:
    """
    Approve a borderline-age denial. Inserts a new OVERRIDDEN record.

    Only DENIED records flagged manager_override_eligible qualify (never an
    expired ID or an under-18 customer), and each can be overridden once.
    """
    require_permission(manager, "OVERRIDE_AGE_VERIFICATION", resource="age_verification_override")

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Override reason is required")

    original = db.session.get(AgeVerificationRecord, record_id)
    if original is None:
        raise NotFoundError(f"Age verification {record_id} not found")

    if original.outcome != "DENIED" or not original.manager_override_eligible:
        raise OverrideNotAllowedError(
            "Verification is not eligible for manager override",
            details={"verification_id": original.id, "outcome": original.outcome},
        )

    existing = db.session.query(AgeVerificationRecord.id).filter_by(
        overrides_record_id=original.id
    ).first()
    if existing:
        raise OverrideNotAllowedError(
            "Verification has already been overridden",
            details={"verification_id": original.id, "override_id": existing[0]},
        )

    # Copies the stored id_number envelope as-is; same column, same key
    override = AgeVerificationRecord(
        customer_id=original.customer_id,
        id_type=original.id_type,
        id_number=original.id_number,
        id_issuing_state=original.id_issuing_state,
        id_expiration_date=original.id_expiration_date,
        calculated_age=original.calculated_age,
        verification_method=original.verification_method,
        outcome="OVERRIDDEN",
        reason_for_denial=original.reason_for_denial,
        manager_override_eligible=False,
        overrides_record_id=original.id,
        override_reason=reason,
        employee_id=manager.id,
        store_id=original.store_id,
        created_at=utcnow(),
    )
    db.session.add(override)
    log_security_event(
        user_id=manager.id,
        event_type="AGE_VERIFICATION_OVERRIDE",
        success=True,
        resource="age_verification",
        action="OVERRIDE_AGE_VERIFICATION",
        reason=reason,
        store_id=original.store_id,
        commit=False,
    )
    db.session.commit()

    current_app.logger.info(
        "Age verification override: record=%s overrides=%s manager=%s",
        override.id, original.id, manager.id,
    )
    return override


def assert_cart_verified(requires: bool, completed: bool, verification_id: int | None = None):
    """
    Gate a checkout. Returns the verification record when one was given.

    Raises AgeVerificationRequiredError when verification is needed but not
    completed, and AgeVerificationDeniedError when the referenced record is
    missing or did not pass.
    """
    if requires and not completed:
        raise AgeVerificationRequiredError(VERIFICATION_REQUIRED_MESSAGE)

    if verification_id is None:
        return None

    record = db.session.get(AgeVerificationRecord, verification_id)
    if record is None:
        raise AgeVerificationDeniedError(
            f"Age verification {verification_id} not found",
            details={"verification_id": verification_id},
        )
    if not record.is_verified:
        raise AgeVerificationDeniedError(
            record.reason_for_denial or "Age verification was denied",
            details={"verification_id": record.id, "outcome": record.outcome},
        )
    return record


def get_history(customer_id: int | None = None, days: int = 30) -> list[AgeVerificationRecord]:
    if days <= 0:
        raise ValidationError("days must be a positive integer")

    since = utcnow() - timedelta(days=days)
    query = db.session.query(AgeVerificationRecord).filter(AgeVerificationRecord.created_at >= since)
    if customer_id is not None:
        query = query.filter(AgeVerificationRecord.customer_id == customer_id)
    return query.order_by(AgeVerificationRecord.created_at.desc(), AgeVerificationRecord.id.desc()).all()
