# Overview: Accounts payable / receivable listing and settlement.

from __future__ import annotations

import logging

from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AccountsPayable, AccountsReceivable
from ..models.purchasing import PAYABLE_PAGO, PAYABLE_PENDENTE
from ..models.sales import RECEIVABLE_PENDENTE, RECEIVABLE_RECEBIDO
from .concurrency import lock_for_update, run_atomic
from estoque.time_utils import utcnow

logger = logging.getLogger("estoque")

PAYABLE_STATUSES = (PAYABLE_PENDENTE, PAYABLE_PAGO)
RECEIVABLE_STATUSES = (RECEIVABLE_PENDENTE, RECEIVABLE_RECEBIDO)


def list_payables(*, status: str | None = None) -> list[AccountsPayable]:
    if status and status not in PAYABLE_STATUSES:
        raise ValidationError(f"Unknown status {status!r}")
    q = db.session.query(AccountsPayable)
    if status:
        q = q.filter(AccountsPayable.status == status)
    return q.order_by(AccountsPayable.created_at.desc(), AccountsPayable.id.desc()).all()


def pay_payable(payable_id: int) -> AccountsPayable:
    """
    Mark a payable as paid (PENDENTE -> PAGO) and stamp paid_at.

    Raises:
        NotFoundError: no such payable
        InvalidStateError: already paid
    """
    def _op():
        payable = lock_for_update(db.session.query(AccountsPayable).filter_by(id=payable_id)).first()
        if payable is None:
            raise NotFoundError(f"Payable {payable_id} not found", details={"payable_id": payable_id})
        if payable.status != PAYABLE_PENDENTE:
            raise InvalidStateError(
                f"Payable is already {payable.status}",
                details={"payable_id": payable.id, "status": payable.status},
            )
        payable.status = PAYABLE_PAGO
        payable.paid_at = utcnow()
        logger.info("payable.paid", extra={"payable_id": payable.id, "amount_cents": payable.amount_cents})
        return payable

    return run_atomic(_op)


def list_receivables(*, status: str | None = None) -> list[AccountsReceivable]:
    if status and status not in RECEIVABLE_STATUSES:
        raise ValidationError(f"Unknown status {status!r}")
    q = db.session.query(AccountsReceivable)
    if status:
        q = q.filter(AccountsReceivable.status == status)
    return q.order_by(AccountsReceivable.created_at.desc(), AccountsReceivable.id.desc()).all()


def receive_receivable(receivable_id: int) -> AccountsReceivable:
    """Mark a receivable as collected (PENDENTE -> RECEBIDO)."""
    def _op():
        receivable = lock_for_update(
            db.session.query(AccountsReceivable).filter_by(id=receivable_id)
        ).first()
        if receivable is None:
            raise NotFoundError(f"Receivable {receivable_id} not found", details={"receivable_id": receivable_id})
        if receivable.status != RECEIVABLE_PENDENTE:
            raise InvalidStateError(
                f"Receivable is already {receivable.status}",
                details={"receivable_id": receivable.id, "status": receivable.status},
            )
        receivable.status = RECEIVABLE_RECEBIDO
        receivable.received_at = utcnow()
        logger.info(
            "receivable.received",
            extra={"receivable_id": receivable.id, "amount_cents": receivable.amount_cents},
        )
        return receivable

    return run_atomic(_op)
