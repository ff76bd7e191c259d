# Overview: Typed failures raised by the ledger services and mapped to results by the routes.

"""
Ledger failure taxonomy.

Every service operation either commits completely or raises one of these.
The request layer turns them into a failure envelope:

    {"success": false, "error": <message>, "code": <code>}

with `status_code` as the HTTP status.

- ValidationError: malformed or out-of-range input, rejected before any write
- NotFoundError: referenced entity missing for this owner
- InsufficientStockError: OUT quantity exceeds available stock
- InvariantViolationError: domain rule breach (already paid, exceeds due, ...)
- LedgerConflictError: the transaction could not commit (contention, lock
  timeout, lost connection). The whole operation may be retried by the caller.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures."""
    code = "LEDGER_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(LedgerError):
    """Invalid input."""
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(LedgerError):
    """Entity not found."""
    code = "NOT_FOUND"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    """Product not found."""
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id, label: str | None = None):
        self.product_id = product_id
        super().__init__(f"Product not found: {label or product_id}")


class InsufficientStockError(LedgerError):
    """Insufficient stock."""
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, name: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {name}. Available: {available}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        })
        return data


class InvariantViolationError(LedgerError):
    """Ledger rule violated."""
    code = "INVARIANT_VIOLATION"
    status_code = 409


class DuplicateSkuError(InvariantViolationError):
    """A product with this SKU already exists in your inventory."""
    code = "DUPLICATE_SKU"


class AlreadyPaidError(InvariantViolationError):
    """This invoice is already fully paid."""
    code = "ALREADY_PAID"


class AmountExceedsDueError(InvariantViolationError):
    """Payment amount exceeds the outstanding due."""
    code = "AMOUNT_EXCEEDS_DUE"


class NoOutstandingDueError(InvariantViolationError):
    """Customer has no outstanding due."""
    code = "NO_OUTSTANDING_DUE"


class NoAssociatedCustomerError(InvariantViolationError):
    """This invoice has no associated customer."""
    code = "NO_ASSOCIATED_CUSTOMER"


class LedgerConflictError(LedgerError):
    """The operation conflicted with a concurrent change and was rolled back."""
    code = "CONFLICT"
    status_code = 409
    retryable = True

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = True
        return data
