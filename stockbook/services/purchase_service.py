# Overview: Service-layer operations for supplier purchases; stock IN plus payables in one transaction.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError
from ..models import Purchase, PurchaseLine
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..validation import clean_text, normalize_purchase_items, optional_int, require_amount, require_choice, require_int
from . import payables_service, receivables_service, stock_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_purchase_number
"""
Purchase Engine

Only COMPLETED purchases have ledger effects:
- supplier.due_cents += purchase due
- one IN movement per line, plus the product's latest purchase price and
  supplier link

Edits and deletes first reverse the old effects (supplier due down, clamped
OUT per old line), then apply the new ones. The purchase row itself is
written last.

LOCK ORDER: products (ascending id) -> suppliers (ascending id) -> purchase
"""


# =============================================================================
# PURCHASE STATUS (CONSTANTS)
# =============================================================================

PURCHASE_STATUS_PENDING = "PENDING"
PURCHASE_STATUS_COMPLETED = "COMPLETED"
PURCHASE_STATUS_CANCELLED = "CANCELLED"

VALID_PURCHASE_STATUSES = {
    PURCHASE_STATUS_PENDING,
    PURCHASE_STATUS_COMPLETED,
    PURCHASE_STATUS_CANCELLED,
}


def derive_purchase_payment_status(total_cents: int, paid_cents: int) -> str:
    return receivables_service.derive_payment_status(paid_cents, max(0, total_cents - paid_cents))


def _restock_reason(purchase_number: str) -> str:
    return f"Purchase Restock [{purchase_number}]"


def _edit_reversal_reason(purchase_number: str) -> str:
    return f"Purchase Edit Reversal [{purchase_number}]"


def _edit_restock_reason(purchase_number: str) -> str:
    return f"Purchase Edit Restock [{purchase_number}]"


def _deleted_reason(purchase_number: str) -> str:
    return f"Purchase Deleted [{purchase_number}]"


def _lock_suppliers(owner_id: str, supplier_ids) -> dict:
    return {
        sid: payables_service.get_supplier(owner_id, sid, lock=True)
        for sid in sorted({sid for sid in supplier_ids if sid is not None})
    }


def _build_lines(lines_in: list[dict], products: dict) -> list[PurchaseLine]:
    lines = []
    for item in lines_in:
        product = products[item["product_id"]]
        lines.append(PurchaseLine(
            product_id=product.id,
            name=item["name"] or product.name,
            sku=item["sku"] or product.sku,
            quantity=item["quantity"],
            purchase_price_cents=item["purchase_price_cents"],
            line_total_cents=item["line_total_cents"],
        ))
    return lines


def _apply_effects(purchase_number: str, supplier, lines_in: list[dict], due_cents: int, products: dict, reason: str) -> None:
    payables_service.increase_due(supplier, due_cents)
    for item in lines_in:
        product = products[item["product_id"]]
        stock_service.apply_movement_to_product(
            product,
            MOVEMENT_IN,
            item["quantity"],
            reason=reason,
            reference=purchase_number,
        )
        product.purchase_price_cents = item["purchase_price_cents"]
        product.supplier_id = supplier.id


def _reverse_effects(purchase: Purchase, supplier, products: dict, reason: str) -> None:
    payables_service.decrease_due(supplier, purchase.due_cents or 0)
    for line in purchase.lines:
        stock_service.apply_movement_to_product(
            products[line.product_id],
            MOVEMENT_OUT,
            line.quantity,
            reason=reason,
            reference=purchase.purchase_number,
            clamp=True,
        )


def _load_purchase(owner_id: str, purchase_id: int, *, lock: bool = False) -> Purchase:
    query = db.session.query(Purchase).filter_by(id=purchase_id, owner_id=owner_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    purchase = query.first()
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found")
    return purchase


def create_purchase(
    *,
    owner_id: str,
    supplier_id,
    items,
    total_cents=None,
    paid_cents=0,
    status: str = PURCHASE_STATUS_COMPLETED,
    purchase_number: str | None = None,
    notes: str | None = None,
) -> Purchase:
    """
    Record a purchase from a supplier.

    total defaults to the sum of line totals. due = max(0, total - paid).
    A missing product aborts the whole purchase: no row, no movements, no
    supplier due change.
    """
    supplier_id = require_int(supplier_id, "supplier_id", minimum=1)
    lines_in = normalize_purchase_items(items)
    total = optional_int(total_cents, "total_cents", minimum=0)
    if total is None:
        total = sum(item["line_total_cents"] for item in lines_in)
    paid = require_amount(paid_cents, "paid_cents", default=0)
    status = require_choice(status, "status", VALID_PURCHASE_STATUSES, default=PURCHASE_STATUS_COMPLETED)
    number = clean_text(purchase_number, max_length=64)
    notes = clean_text(notes, max_length=2000)

    def _op() -> Purchase:
        products = stock_service.lock_products(owner_id, [item["product_id"] for item in lines_in])
        supplier = payables_service.get_supplier(owner_id, supplier_id, lock=True)

        due = max(0, total - paid)
        purchase = Purchase(
            owner_id=owner_id,
            supplier_id=supplier.id,
            purchase_number=number or next_purchase_number(),
            total_cents=total,
            paid_cents=paid,
            due_cents=due,
            status=status,
            payment_status=derive_purchase_payment_status(total, paid),
            notes=notes,
            lines=_build_lines(lines_in, products),
        )
        db.session.add(purchase)

        if status == PURCHASE_STATUS_COMPLETED:
            _apply_effects(
                purchase.purchase_number, supplier, lines_in, due, products,
                _restock_reason(purchase.purchase_number),
            )

        db.session.flush()
        return purchase

    purchase = run_in_transaction(_op, operation="create purchase")
    current_app.logger.info(
        "Purchase %s created: status=%s total=%s due=%s",
        purchase.purchase_number, purchase.status, purchase.total_cents, purchase.due_cents,
    )
    return purchase


def update_purchase(
    *,
    owner_id: str,
    purchase_id: int,
    supplier_id=None,
    items=None,
    total_cents=None,
    paid_cents=None,
    status: str | None = None,
    notes: str | None = None,
) -> Purchase:
    """
    Edit a purchase.

    Omitted fields keep their current values; when items are replaced and
    no total is given, the total is recomputed from the new lines.

    1. Old purchase COMPLETED: reverse (supplier due down, clamped OUT per old line)
    2. New status COMPLETED: apply again with the new lines/supplier/due
    3. Write the new purchase fields
    """
    new_lines_in = None if items is None else normalize_purchase_items(items)
    new_supplier_id = None if supplier_id is None else require_int(supplier_id, "supplier_id", minimum=1)
    new_total = optional_int(total_cents, "total_cents", minimum=0)
    new_paid = optional_int(paid_cents, "paid_cents", minimum=0)
    new_status = None if status is None else require_choice(status, "status", VALID_PURCHASE_STATUSES)

    def _op() -> Purchase:
        existing = _load_purchase(owner_id, purchase_id)

        if new_lines_in is None:
            lines_in = [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "sku": line.sku,
                    "quantity": line.quantity,
                    "purchase_price_cents": line.purchase_price_cents,
                    "line_total_cents": line.line_total_cents,
                }
                for line in existing.lines
            ]
        else:
            lines_in = new_lines_in

        old_product_ids = [line.product_id for line in existing.lines]
        products = stock_service.lock_products(
            owner_id, old_product_ids + [item["product_id"] for item in lines_in]
        )
        target_supplier_id = new_supplier_id or existing.supplier_id
        suppliers = _lock_suppliers(owner_id, [existing.supplier_id, target_supplier_id])

        purchase = _load_purchase(owner_id, purchase_id, lock=True)
        number = purchase.purchase_number

        if purchase.status == PURCHASE_STATUS_COMPLETED:
            _reverse_effects(purchase, suppliers[purchase.supplier_id], products, _edit_reversal_reason(number))

        if new_total is not None:
            total = new_total
        elif new_lines_in is not None:
            total = sum(item["line_total_cents"] for item in lines_in)
        else:
            total = purchase.total_cents
        paid = purchase.paid_cents if new_paid is None else new_paid
        due = max(0, total - paid)
        final_status = new_status or purchase.status
        supplier = suppliers[target_supplier_id]

        if final_status == PURCHASE_STATUS_COMPLETED:
            _apply_effects(number, supplier, lines_in, due, products, _edit_restock_reason(number))

        if new_lines_in is not None:
            purchase.lines = _build_lines(lines_in, products)
        purchase.supplier_id = supplier.id
        purchase.total_cents = total
        purchase.paid_cents = paid
        purchase.due_cents = due
        purchase.status = final_status
        purchase.payment_status = derive_purchase_payment_status(total, paid)
        if notes is not None:
            purchase.notes = clean_text(notes, max_length=2000)

        db.session.flush()
        return purchase

    purchase = run_in_transaction(_op, operation="update purchase")
    current_app.logger.info(
        "Purchase %s updated: status=%s total=%s due=%s",
        purchase.purchase_number, purchase.status, purchase.total_cents, purchase.due_cents,
    )
    return purchase


def delete_purchase(*, owner_id: str, purchase_id: int) -> dict:
    """Delete a purchase; a COMPLETED one has its stock and supplier due reversed first."""
    def _op() -> dict:
        existing = _load_purchase(owner_id, purchase_id)
        products = stock_service.lock_products(owner_id, [line.product_id for line in existing.lines])
        supplier = payables_service.get_supplier(owner_id, existing.supplier_id, lock=True)

        purchase = _load_purchase(owner_id, purchase_id, lock=True)
        if purchase.status == PURCHASE_STATUS_COMPLETED:
            _reverse_effects(purchase, supplier, products, _deleted_reason(purchase.purchase_number))

        result = {"id": purchase.id, "purchase_number": purchase.purchase_number}
        db.session.delete(purchase)
        db.session.flush()
        return result

    result = run_in_transaction(_op, operation="delete purchase")
    current_app.logger.info("Purchase %s deleted", result["purchase_number"])
    return result


def get_purchase(owner_id: str, purchase_id: int) -> Purchase:
    return _load_purchase(owner_id, purchase_id)


def list_purchases(owner_id: str, supplier_id: int | None = None) -> list[Purchase]:
    query = db.session.query(Purchase).filter(Purchase.owner_id == owner_id)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    return query.order_by(Purchase.created_at.desc(), Purchase.id.desc()).all()
