# Overview: Transaction boundary and row locking shared by every ledger operation.

from __future__ import annotations

from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InvariantViolationError, LedgerConflictError
from ..extensions import db

T = TypeVar("T")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id_col on contended rows still turns a lost
    update into a StaleDataError at flush time.
    """
    return query.with_for_update()


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Duplicate key (document number or SKU race) rather than a CHECK/NOT NULL/FK failure."""
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig).lower()
    return "unique" in message or "duplicate" in message


def run_in_transaction(func: Callable[[], T], *, operation: str = "ledger operation") -> T:
    """
    Execute func as one all-or-nothing unit of work.

    - Success: commit, return func's result.
    - Any exception: roll back every write made by func and re-raise.
    - OperationalError (lock timeout, deadlock, lost connection),
      StaleDataError (optimistic version mismatch) and unique-key
      IntegrityError (duplicate document number) are re-raised as
      LedgerConflictError.
    - Any other IntegrityError (CHECK, NOT NULL, foreign key) is re-raised
      as InvariantViolationError; retrying cannot help.

    No retry happens here. Callers may retry the whole operation, never a
    sub-step.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except IntegrityError as exc:
        db.session.rollback()
        if not _is_unique_violation(exc):
            current_app.logger.error("%s rejected by a database constraint: %s", operation, exc)
            raise InvariantViolationError(
                f"{operation} violated a ledger constraint; nothing was saved"
            ) from exc
        current_app.logger.warning("%s rolled back after duplicate key: %s", operation, exc)
        raise LedgerConflictError(
            f"{operation} conflicted with a concurrent change; nothing was saved"
        ) from exc
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        current_app.logger.warning("%s rolled back after conflict: %s", operation, exc)
        raise LedgerConflictError(
            f"{operation} conflicted with a concurrent change; nothing was saved"
        ) from exc
    except Exception:
        db.session.rollback()
        raise
