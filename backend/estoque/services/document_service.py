# Overview: Sequential human-readable order codes (PO-0001, VD-0001).

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, PurchaseOrder, SalesOrder


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


# document_type -> (prefix, model whose codes seed the counter)
SEQUENCES = {
    "PURCHASE_ORDER": ("PO", PurchaseOrder),
    "SALES_ORDER": ("VD", SalesOrder),
}


def _highest_existing_number(model, prefix: str) -> int:
    """Numeric part of the lexicographically last existing code, or 0."""
    last_code = (
        db.session.query(func.max(model.code))
        .filter(model.code.like(f"{prefix}-%"))
        .scalar()
    )
    if not last_code:
        return 0
    try:
        return int(last_code[len(prefix) + 1:])
    except ValueError:
        raise DocumentSequenceError(f"Unparseable document code {last_code!r}")


def _bump(document_type: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(document_type: str, *, pad: int | None = None) -> str:
    """
    Allocate the next code for an order type inside the caller's transaction.

    The counter row is bumped with a single UPDATE, which takes the row lock
    until the surrounding transaction commits, so two concurrent creations
    cannot receive the same number. On first use the counter is seeded from
    the highest code already stored. Numbers may have gaps (a rolled-back
    creation consumes nothing, a deleted PENDENTE order leaves a hole).
    """
    if document_type not in SEQUENCES:
        raise DocumentSequenceError(f"Unknown document_type {document_type!r}")
    prefix, model = SEQUENCES[document_type]
    if pad is None:
        pad = current_app.config.get("ORDER_CODE_PAD", 4)

    next_num = _bump(document_type)
    if next_num is None:
        seed = _highest_existing_number(model, prefix) + 1
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, next_number=seed + 1))
            next_num = seed
        except IntegrityError:
            # Another transaction created the counter row first
            next_num = _bump(document_type)
            if next_num is None:
                raise

    return f"{prefix}-{next_num:0{pad}d}"
