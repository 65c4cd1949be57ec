from __future__ import annotations

from ..extensions import db
from justsell.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    email, phone and driver_license_number are sensitive: the columns hold
    encrypted envelopes written by CustomerRepository. to_dict() returns the
    stored values; use CustomerRepository.read() for plaintext.

    Loyalty balance, spend and tier are updated by the transaction writer in
    the same DB transaction as the sale insert.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("loyalty_points >= 0", name="ck_customers_points_non_negative"),
        db.Index("ix_customers_name", "last_name", "first_name"),
        db.Index("ix_customers_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)

    # Encrypted envelopes (JSON text)
    email = db.Column(db.Text, nullable=True)
    phone = db.Column(db.Text, nullable=True)
    driver_license_number = db.Column(db.Text, nullable=True)

    date_of_birth = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    points_lifetime_earned = db.Column(db.Integer, nullable=False, default=0)
    points_lifetime_redeemed = db.Column(db.Integer, nullable=False, default=0)
    loyalty_tier = db.Column(db.String(16), nullable=False, default="BRONZE")

    # Denormalized aggregates (updated when transactions are completed)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    transaction_count = db.Column(db.Integer, nullable=False, default=0)
    last_purchase_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "driver_license_number": self.driver_license_number,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "is_active": self.is_active,
            "loyalty_points": self.loyalty_points,
            "points_lifetime_earned": self.points_lifetime_earned,
            "points_lifetime_redeemed": self.points_lifetime_redeemed,
            "loyalty_tier": self.loyalty_tier,
            "total_spent_cents": self.total_spent_cents,
            "transaction_count": self.transaction_count,
            "last_purchase_at": to_utc_z(self.last_purchase_at) if self.last_purchase_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
