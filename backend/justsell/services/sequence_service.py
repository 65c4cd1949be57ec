# Overview: Service-layer operations for receipt numbering; per-store counter allocation.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ValidationError
from ..models import ReceiptSequence
from .concurrency import lock_for_update

SEQUENCE_DIGITS = 6
STORE_DIGITS = 4


def allocate_sequence(store_id: int) -> int:
    """
    Take the next per-store sequence value inside the caller's transaction.

    The counter row is locked (or created on first use) and bumped with an
    UPDATE, so it is released only when the checkout commits or rolls back.
    If another checkout creates the row first, the insert is rolled back to
    a savepoint and the existing row is incremented instead.
    """
    if not store_id:
        raise ValidationError("store_id is required")

    query = db.session.query(ReceiptSequence).filter_by(store_id=store_id)
    seq = lock_for_update(query).first()

    if seq is None:
        try:
            with db.session.begin_nested():
                db.session.add(ReceiptSequence(store_id=store_id, next_number=2))
                db.session.flush()
            return 1
        except IntegrityError:
            # uq_receipt_sequences_store: the row exists now
            seq = lock_for_update(query).one()

    current = seq.next_number
    db.session.execute(
        update(ReceiptSequence)
        .where(ReceiptSequence.id == seq.id)
        .values(next_number=ReceiptSequence.next_number + 1)
    )
    db.session.refresh(seq)
    return current


def format_receipt_number(moment: datetime, store_id: int, sequence: int) -> str:
    """
    R + YYYYMMDDHHMMSS + store id + sequence, e.g. R202403151425300001000042.

    The store id is zero-padded to four digits (wider ids print in full) and
    the sequence to six, so numbers from different stores never coincide.
    """
    return (
        f"R{moment:%Y%m%d%H%M%S}"
        f"{store_id:0{STORE_DIGITS}d}"
        f"{sequence % 10 ** SEQUENCE_DIGITS:0{SEQUENCE_DIGITS}d}"
    )


def next_receipt_number(store_id: int, moment: datetime) -> str:
    return format_receipt_number(moment, store_id, allocate_sequence(store_id))
