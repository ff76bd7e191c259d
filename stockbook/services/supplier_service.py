# Overview: Service-layer guarded delete for suppliers.

from __future__ import annotations

from ..extensions import db
from ..errors import InvariantViolationError
from .concurrency import run_in_transaction
from .payables_service import get_supplier


def delete_supplier(*, owner_id: str, supplier_id: int) -> None:
    """Delete a supplier. Refused while any purchase references it."""
    def _op() -> None:
        supplier = get_supplier(owner_id, supplier_id, lock=True)
        if supplier.purchases.count() > 0:
            raise InvariantViolationError("Cannot delete supplier with existing purchase history.")
        db.session.delete(supplier)
        db.session.flush()

    run_in_transaction(_op, operation="delete supplier")
