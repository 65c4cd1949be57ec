from __future__ import annotations

from ..extensions import db
from justsell.time_utils import to_utc_z


class Store(db.Model):
    """
    Retail location.

    tax_id is a sensitive field: it is stored as an encrypted envelope and
    only written/read through StoreRepository.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_stores_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    address_line1 = db.Column(db.String(255), nullable=True)
    address_line2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state_code = db.Column(db.String(2), nullable=True)
    zip_code = db.Column(db.String(16), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    # Encrypted envelope (JSON); see repositories.StoreRepository
    tax_id = db.Column(db.Text, nullable=True)

    # Basis points; NULL falls back to DEFAULT_TAX_RATE_BPS
    tax_rate_bps = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} code={self.code!r}>"

    def address(self) -> str:
        city_line = " ".join(
            part for part in (
                f"{self.city}," if self.city else None,
                self.state_code,
                self.zip_code,
            ) if part
        )
        return ", ".join(part for part in (self.address_line1, self.address_line2, city_line) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state_code": self.state_code,
            "zip_code": self.zip_code,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "tax_rate_bps": self.tax_rate_bps,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
