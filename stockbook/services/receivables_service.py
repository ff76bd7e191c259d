# Overview: Service-layer primitives for the receivables ledger (customer aggregates and invoice balances).

"""
Receivables Ledger

Owns the customer aggregate fields and the paid/due/status triple on each
invoice. Every function here runs inside the caller's transaction and
expects the rows it mutates to be locked already; nothing here commits.

CUSTOMER INVARIANTS:
- total_due_cents == SUM(orders.due_cents)
- unpaid_invoice_count == COUNT(orders WHERE payment_status IN (UNPAID, PARTIAL))
- all aggregates >= 0
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import Customer, Order
from .concurrency import lock_for_update


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"

OPEN_PAYMENT_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL)


def derive_payment_status(paid_cents: int, due_cents: int) -> str:
    """
    - PAID: nothing due
    - PARTIAL: something due, something paid
    - UNPAID: something due, nothing paid
    """
    if due_cents <= 0:
        return PAYMENT_STATUS_PAID
    if paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def split_amounts(total_cents: int, requested_paid_cents: int | None) -> tuple[int, int]:
    """
    Return (paid, due) for a document total.

    paid defaults to the full total and is capped at it; due is never
    negative.
    """
    paid = total_cents if requested_paid_cents is None else min(requested_paid_cents, total_cents)
    paid = max(0, paid)
    due = max(0, total_cents - paid)
    return paid, due


# =============================================================================
# CUSTOMER LOOKUP
# =============================================================================

def get_customer(owner_id: str, customer_id: int, *, lock: bool = False) -> Customer:
    query = db.session.query(Customer).filter_by(id=customer_id, owner_id=owner_id)
    if lock:
        query = lock_for_update(query)
    customer = query.first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


# =============================================================================
# AGGREGATE UPDATES
# =============================================================================

def record_invoice(customer: Customer, *, paid_cents: int, due_cents: int) -> None:
    """A new invoice was issued to this customer."""
    customer.invoice_count = (customer.invoice_count or 0) + 1
    customer.total_paid_cents = (customer.total_paid_cents or 0) + paid_cents
    if due_cents > 0:
        customer.total_due_cents = (customer.total_due_cents or 0) + due_cents
        customer.unpaid_invoice_count = (customer.unpaid_invoice_count or 0) + 1


def reverse_invoice(customer: Customer, *, paid_cents: int, due_cents: int) -> None:
    """An invoice was removed; undo what record_invoice (and later payments) added."""
    customer.invoice_count = max(0, (customer.invoice_count or 0) - 1)
    customer.total_paid_cents = max(0, (customer.total_paid_cents or 0) - paid_cents)
    if due_cents > 0:
        customer.total_due_cents = max(0, (customer.total_due_cents or 0) - due_cents)
        customer.unpaid_invoice_count = max(0, (customer.unpaid_invoice_count or 0) - 1)


def record_collection(customer: Customer, *, amount_cents: int, invoices_paid_off: int) -> None:
    """Money was collected from the customer and applied to their invoices."""
    customer.total_due_cents = max(0, (customer.total_due_cents or 0) - amount_cents)
    customer.total_paid_cents = (customer.total_paid_cents or 0) + amount_cents
    if invoices_paid_off:
        customer.unpaid_invoice_count = max(0, (customer.unpaid_invoice_count or 0) - invoices_paid_off)


def apply_to_invoice(invoice: Order, amount_cents: int) -> bool:
    """
    Apply amount_cents to one invoice.

    Returns True when this application paid the invoice off.
    """
    invoice.paid_cents = (invoice.paid_cents or 0) + amount_cents
    invoice.due_cents = max(0, (invoice.due_cents or 0) - amount_cents)
    invoice.payment_status = PAYMENT_STATUS_PAID if invoice.due_cents == 0 else PAYMENT_STATUS_PARTIAL
    return invoice.payment_status == PAYMENT_STATUS_PAID


def open_invoices_fifo(owner_id: str, customer_id: int) -> list[Order]:
    """Outstanding invoices for a customer, oldest first (locked)."""
    return lock_for_update(
        db.session.query(Order)
        .filter(
            Order.owner_id == owner_id,
            Order.customer_id == customer_id,
            Order.payment_status.in_(OPEN_PAYMENT_STATUSES),
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
    ).all()
