from __future__ import annotations

from ..extensions import db
from justsell.time_utils import to_utc_z, to_iso_date

PAYMENT_METHODS = ("CASH", "CARD", "GIFT_CARD")


class Transaction(db.Model):
    """
    Completed checkout.

    Created atomically with its LineItems by transaction_service and never
    updated afterwards. All amounts in cents.

    INVARIANTS:
    - total_cents == subtotal_cents + tax_cents
    - subtotal_cents == sum(line_items.line_total_cents)
    - cash_tendered_cents / change_given_cents only set for CASH
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_transactions_receipt_number"),
        db.CheckConstraint(
            "payment_method IN ('CASH', 'CARD', 'GIFT_CARD')", name="ck_transactions_payment_method"
        ),
        db.CheckConstraint("total_cents = subtotal_cents + tax_cents", name="ck_transactions_total"),
        db.Index("ix_transactions_store_date", "store_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable, e.g. "R202403151425300001000042"
    receipt_number = db.Column(db.String(64), nullable=False)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="COMPLETED")
    cash_tendered_cents = db.Column(db.Integer, nullable=True)
    change_given_cents = db.Column(db.Integer, nullable=True)

    # Encrypted envelope (JSON); see repositories.TransactionRepository
    card_last4 = db.Column(db.Text, nullable=True)

    age_verification_required = db.Column(db.Boolean, nullable=False, default=False)
    age_verification_completed = db.Column(db.Boolean, nullable=False, default=False)
    age_verification_id = db.Column(
        db.Integer, db.ForeignKey("age_verification_records.id"), nullable=True
    )

    loyalty_points_earned = db.Column(db.Integer, nullable=False, default=0)
    loyalty_points_redeemed = db.Column(db.Integer, nullable=False, default=0)
    # Customer balance after this sale (receipt snapshot)
    loyalty_balance_after = db.Column(db.Integer, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store")
    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    employee = db.relationship("User")
    line_items = db.relationship(
        "LineItem",
        backref="transaction",
        lazy=True,
        order_by="LineItem.id",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "employee_id": self.employee_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "cash_tendered_cents": self.cash_tendered_cents,
            "change_given_cents": self.change_given_cents,
            "card_last4": self.card_last4,
            "age_verification_required": self.age_verification_required,
            "age_verification_completed": self.age_verification_completed,
            "age_verification_id": self.age_verification_id,
            "loyalty_points_earned": self.loyalty_points_earned,
            "loyalty_points_redeemed": self.loyalty_points_redeemed,
            "loyalty_balance_after": self.loyalty_balance_after,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["line_items"] = [line.to_dict() for line in self.line_items]
        return data


class LineItem(db.Model):
    """
    One product/quantity entry of a transaction.

    Name, SKU, price, lot and expiration are snapshots taken at sale time so
    later product edits never change historical receipts.
    """
    __tablename__ = "line_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
        db.CheckConstraint(
            "line_total_cents = unit_price_cents * quantity", name="ck_line_items_line_total"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    age_verification_required = db.Column(db.Boolean, nullable=False, default=False)
    lot_number = db.Column(db.String(64), nullable=True)
    expiration_date = db.Column(db.Date, nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "age_verification_required": self.age_verification_required,
            "lot_number": self.lot_number,
            "expiration_date": to_iso_date(self.expiration_date),
        }


class ReceiptSequence(db.Model):
    """
    Per-store receipt counter.

    Locked and incremented inside the checkout transaction, so two
    concurrent sales can never be handed the same sequence number.
    """
    __tablename__ = "receipt_sequences"
    __table_args__ = (
        db.UniqueConstraint("store_id", name="uq_receipt_sequences_store"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
