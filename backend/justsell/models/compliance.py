from __future__ import annotations

from ..extensions import db
from justsell.time_utils import to_utc_z, to_iso_date

ID_TYPES = ("drivers_license", "state_id", "passport", "military_id")
VERIFICATION_METHODS = ("manual", "scanner", "digital")
OUTCOMES = ("VERIFIED", "DENIED", "OVERRIDDEN")


class AgeVerificationRecord(db.Model):
    """
    One age-verification attempt.

    IMMUTABLE: inserted once and never updated. A manager override is a new
    OVERRIDDEN row pointing at the denied one via overrides_record_id.

    id_number is a sensitive field (encrypted envelope, see
    repositories.AgeVerificationRepository). Date of birth is not kept,
    only the age computed at verification time.
    """
    __tablename__ = "age_verification_records"
    __table_args__ = (
        db.CheckConstraint(
            "outcome IN ('VERIFIED', 'DENIED', 'OVERRIDDEN')", name="ck_age_verification_outcome"
        ),
        db.Index("ix_age_verification_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    id_type = db.Column(db.String(32), nullable=False)
    id_number = db.Column(db.Text, nullable=False)
    id_issuing_state = db.Column(db.String(2), nullable=True)
    id_expiration_date = db.Column(db.Date, nullable=False)

    calculated_age = db.Column(db.Integer, nullable=False)
    verification_method = db.Column(db.String(16), nullable=False, default="manual")

    outcome = db.Column(db.String(16), nullable=False, index=True)
    reason_for_denial = db.Column(db.String(255), nullable=True)
    manager_override_eligible = db.Column(db.Boolean, nullable=False, default=False)

    overrides_record_id = db.Column(
        db.Integer, db.ForeignKey("age_verification_records.id"), nullable=True, index=True
    )
    override_reason = db.Column(db.String(255), nullable=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    employee = db.relationship("User")
    overrides = db.relationship("AgeVerificationRecord", remote_side=[id])

    @property
    def is_verified(self) -> bool:
        return self.outcome in ("VERIFIED", "OVERRIDDEN")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "id_type": self.id_type,
            "id_number": self.id_number,
            "id_issuing_state": self.id_issuing_state,
            "id_expiration_date": to_iso_date(self.id_expiration_date),
            "calculated_age": self.calculated_age,
            "verification_method": self.verification_method,
            "outcome": self.outcome,
            "is_verified": self.is_verified,
            "reason_for_denial": self.reason_for_denial,
            "manager_override_eligible": self.manager_override_eligible,
            "overrides_record_id": self.overrides_record_id,
            "override_reason": self.override_reason,
            "employee_id": self.employee_id,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
        }
