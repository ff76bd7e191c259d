# Overview: Service-layer primitives for the payables ledger (supplier due balance).

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import Supplier
from .concurrency import lock_for_update
"""
Payables Ledger

Supplier.due_cents is owned here and changed only by the purchase engine,
inside its transaction. Nothing in this module commits.
"""


def get_supplier(owner_id: str, supplier_id: int, *, lock: bool = False) -> Supplier:
    query = db.session.query(Supplier).filter_by(id=supplier_id, owner_id=owner_id)
    if lock:
        query = lock_for_update(query)
    supplier = query.first()
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def increase_due(supplier: Supplier, amount_cents: int) -> None:
    if amount_cents <= 0:
        return
    supplier.due_cents = (supplier.due_cents or 0) + amount_cents


def decrease_due(supplier: Supplier, amount_cents: int) -> None:
    if amount_cents <= 0:
        return
    supplier.due_cents = max(0, (supplier.due_cents or 0) - amount_cents)
