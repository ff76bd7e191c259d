# Overview: Service-layer read models and guarded deletes for customers.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import InvariantViolationError
from ..models import Customer, Order, Payment
from stockbook.time_utils import to_utc_z
from .concurrency import run_in_transaction
from .receivables_service import OPEN_PAYMENT_STATUSES, get_customer


def get_customer_invoices(owner_id: str, customer_id: int) -> list[Order]:
    """All invoices for a customer, newest first."""
    get_customer(owner_id, customer_id)
    return (
        db.session.query(Order)
        .filter_by(owner_id=owner_id, customer_id=customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_customer_due_summary(owner_id: str) -> dict:
    """
    Receivables dashboard numbers:
    - total_outstanding_cents / customers_with_due: over customers with due > 0
    - multi_due_customers: customers with more than one open invoice
    - oldest_unpaid: the oldest UNPAID/PARTIAL invoice, or None
    - total_overdue_invoices: count of open invoices
    """
    total_outstanding, customers_with_due = (
        db.session.query(func.coalesce(func.sum(Customer.total_due_cents), 0), func.count(Customer.id))
        .filter(Customer.owner_id == owner_id, Customer.total_due_cents > 0)
        .one()
    )
    multi_due = (
        db.session.query(func.count(Customer.id))
        .filter(Customer.owner_id == owner_id, Customer.unpaid_invoice_count > 1)
        .scalar()
    )
    open_invoices = db.session.query(Order).filter(
        Order.owner_id == owner_id,
        Order.payment_status.in_(OPEN_PAYMENT_STATUSES),
    )
    oldest = open_invoices.order_by(Order.created_at.asc(), Order.id.asc()).first()

    return {
        "total_outstanding_cents": int(total_outstanding or 0),
        "customers_with_due": int(customers_with_due or 0),
        "multi_due_customers": int(multi_due or 0),
        "oldest_unpaid": None if oldest is None else {
            "id": oldest.id,
            "order_number": oldest.order_number,
            "customer_name": oldest.customer_name,
            "due_cents": oldest.due_cents,
            "created_at": to_utc_z(oldest.created_at),
        },
        "total_overdue_invoices": open_invoices.count(),
    }


def delete_customer(*, owner_id: str, customer_id: int) -> None:
    """Delete a customer. Refused while the customer still has orders or payments."""
    def _op() -> None:
        customer = get_customer(owner_id, customer_id, lock=True)
        if customer.orders.count() > 0:
            raise InvariantViolationError(
                "Cannot delete customer with existing orders. Remove their orders first."
            )
        # Payments are immutable and keep their customer link
        if db.session.query(Payment.id).filter_by(owner_id=owner_id, customer_id=customer.id).first():
            raise InvariantViolationError("Cannot delete customer with payment history.")
        db.session.delete(customer)
        db.session.flush()

    run_in_transaction(_op, operation="delete customer")
