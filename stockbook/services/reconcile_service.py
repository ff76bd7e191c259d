# Overview: Read-only checks that cached ledger aggregates agree with their source rows.

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import Customer, Order, Product, Purchase, StockMovement, Supplier
from ..models.inventory import PRODUCT_TYPE_PRODUCT
from .purchase_service import PURCHASE_STATUS_COMPLETED
from .receivables_service import OPEN_PAYMENT_STATUSES
"""
Reconciliation

Nothing here writes. Each check returns a list of mismatch dicts:
    {"entity": ..., "id": ..., "field": ..., "cached": ..., "expected": ...}
An empty list means the ledger is consistent for that owner.
"""


def _mismatch(entity: str, entity_id: int, field: str, cached, expected) -> dict:
    return {
        "entity": entity,
        "id": entity_id,
        "field": field,
        "cached": cached,
        "expected": expected,
    }


def verify_customer_balances(owner_id: str) -> list[dict]:
    """Customer aggregates vs. sums over the customer's orders."""
    open_case = case((Order.payment_status.in_(OPEN_PAYMENT_STATUSES), 1), else_=0)
    sums = {
        row.customer_id: row
        for row in db.session.query(
            Order.customer_id.label("customer_id"),
            func.coalesce(func.sum(Order.due_cents), 0).label("due"),
            func.coalesce(func.sum(Order.paid_cents), 0).label("paid"),
            func.count(Order.id).label("invoices"),
            func.coalesce(func.sum(open_case), 0).label("open"),
        )
        .filter(Order.owner_id == owner_id, Order.customer_id.isnot(None))
        .group_by(Order.customer_id)
        .all()
    }

    mismatches = []
    for customer in db.session.query(Customer).filter_by(owner_id=owner_id).order_by(Customer.id):
        row = sums.get(customer.id)
        expected = {
            "total_due_cents": int(row.due) if row else 0,
            "total_paid_cents": int(row.paid) if row else 0,
            "invoice_count": int(row.invoices) if row else 0,
            "unpaid_invoice_count": int(row.open) if row else 0,
        }
        for field, value in expected.items():
            cached = getattr(customer, field) or 0
            if cached != value:
                mismatches.append(_mismatch("customer", customer.id, field, cached, value))
    return mismatches


def verify_supplier_balances(owner_id: str) -> list[dict]:
    """Supplier due vs. the due of its COMPLETED purchases."""
    dues = dict(
        db.session.query(Purchase.supplier_id, func.coalesce(func.sum(Purchase.due_cents), 0))
        .filter(Purchase.owner_id == owner_id, Purchase.status == PURCHASE_STATUS_COMPLETED)
        .group_by(Purchase.supplier_id)
        .all()
    )

    mismatches = []
    for supplier in db.session.query(Supplier).filter_by(owner_id=owner_id).order_by(Supplier.id):
        expected = int(dues.get(supplier.id, 0))
        cached = supplier.due_cents or 0
        if cached != expected:
            mismatches.append(_mismatch("supplier", supplier.id, "due_cents", cached, expected))
    return mismatches


def verify_stock_history(owner_id: str) -> list[dict]:
    """
    Each tracked product's stock vs. the new_stock of its latest movement.

    A product with no movements is expected to hold no stock.
    """
    mismatches = []
    products = (
        db.session.query(Product)
        .filter_by(owner_id=owner_id, product_type=PRODUCT_TYPE_PRODUCT)
        .order_by(Product.id)
    )
    for product in products:
        latest = (
            db.session.query(StockMovement)
            .filter_by(owner_id=owner_id, product_id=product.id)
            .order_by(StockMovement.id.desc())
            .first()
        )
        expected = latest.new_stock if latest is not None else 0
        cached = product.stock_quantity or 0
        if cached != expected:
            mismatches.append(_mismatch("product", product.id, "stock_quantity", cached, expected))
    return mismatches


def verify_all(owner_id: str) -> list[dict]:
    return (
        verify_customer_balances(owner_id)
        + verify_supplier_balances(owner_id)
        + verify_stock_history(owner_id)
    )
