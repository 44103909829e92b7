# Overview: Transaction boundary and row-locking helpers shared by every mutating service.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyError, ConflictError
from ..extensions import db

logger = logging.getLogger("estoque")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The conditional stock UPDATE and the order version_id check still hold
    on SQLite.
    """
    return query.with_for_update()


def run_atomic(func):
    """
    Execute ``func`` as one all-or-nothing database transaction.

    Commits on success. On any exception every write made by ``func`` is
    rolled back and the error propagates; there is no retry. Store-level
    concurrency failures (optimistic-lock misses, lock timeouts, deadlocks)
    are surfaced as ConcurrencyError, unique-constraint hits as ConflictError.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except StaleDataError as exc:
        db.session.rollback()
        logger.warning("transaction.stale", extra={"error": str(exc)})
        raise ConcurrencyError("The record was modified by another operation; reload and try again") from exc
    except OperationalError as exc:
        db.session.rollback()
        logger.warning("transaction.operational_error", extra={"error": str(exc)})
        raise ConcurrencyError("The database is busy; try again") from exc
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("transaction.integrity_error", extra={"error": str(exc)})
        raise ConflictError("A record with the same unique value already exists") from exc
    except Exception:
        db.session.rollback()
        raise
