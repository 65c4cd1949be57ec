# Overview: Data-access layer that encrypts/decrypts sensitive columns explicitly.

"""
Encrypting repositories.

Each repository names the sensitive columns of one model. Values for those
columns are encrypted on create()/update() and decrypted by read()/reveal().
ORM instances always hold the stored envelope, so loading a row and
committing the session never writes plaintext back.

The field name doubles as the associated-data tag, so an envelope moved
between columns fails to decrypt.
"""

from __future__ import annotations

from flask import current_app

from .extensions import db
from .models import AgeVerificationRecord, Customer, Store, Transaction
from .security import FieldCipher

CIPHER_EXTENSION_KEY = "justsell.field_cipher"


def get_field_cipher() -> FieldCipher:
    return current_app.extensions[CIPHER_EXTENSION_KEY]


class EncryptedRepository:
    model = None
    sensitive_fields: tuple[str, ...] = ()

    def __init__(self, cipher: FieldCipher | None = None):
        self.cipher = cipher or get_field_cipher()

    def encrypt_values(self, values: dict) -> dict:
        encrypted = dict(values)
        for field in self.sensitive_fields:
            value = encrypted.get(field)
            if isinstance(value, str):
                encrypted[field] = self.cipher.wrap(value, field)
        return encrypted

    def decrypt_values(self, values: dict) -> dict:
        decrypted = dict(values)
        for field in self.sensitive_fields:
            stored = decrypted.get(field)
            if stored is None:
                continue
            if not self.cipher.is_encrypted(stored):
                current_app.logger.warning(
                    "Unencrypted %s.%s value passed through", self.model.__tablename__, field
                )
            decrypted[field] = self.cipher.unwrap(stored, field)
        return decrypted

    def get(self, record_id: int):
        return db.session.get(self.model, record_id)

    def create(self, **values):
        """Build and add a new row (caller commits)."""
        record = self.model(**self.encrypt_values(values))
        db.session.add(record)
        return record

    def update(self, record, **values):
        for key, value in self.encrypt_values(values).items():
            setattr(record, key, value)
        return record

    def reveal(self, record, field: str) -> str | None:
        if field not in self.sensitive_fields:
            return getattr(record, field)
        return self.cipher.unwrap(getattr(record, field), field)

    def read(self, record) -> dict:
        """Plain dict of the record with sensitive fields decrypted."""
        return self.decrypt_values(record.to_dict())


class CustomerRepository(EncryptedRepository):
    model = Customer
    sensitive_fields = ("email", "phone", "driver_license_number")

    def search(self, term: str | None, *, active_only: bool = True, limit: int = 20) -> list[Customer]:
        # Contact fields are encrypted, so search is by name only
        query = db.session.query(Customer)
        if active_only:
            query = query.filter(Customer.is_active.is_(True))
        if term:
            like = f"%{term.strip()}%"
            query = query.filter(
                db.or_(Customer.first_name.ilike(like), Customer.last_name.ilike(like))
            )
        return query.order_by(Customer.last_name, Customer.first_name).limit(limit).all()


class StoreRepository(EncryptedRepository):
    model = Store
    sensitive_fields = ("tax_id",)


class TransactionRepository(EncryptedRepository):
    model = Transaction
    sensitive_fields = ("card_last4",)

    def read(self, record, include_lines: bool = False) -> dict:
        return self.decrypt_values(record.to_dict(include_lines=include_lines))


class AgeVerificationRepository(EncryptedRepository):
    model = AgeVerificationRecord
    sensitive_fields = ("id_number",)
