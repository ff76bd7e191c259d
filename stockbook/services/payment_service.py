# Overview: Service-layer operations for collecting customer payments against invoices.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import (
    AlreadyPaidError,
    AmountExceedsDueError,
    NoAssociatedCustomerError,
    NoOutstandingDueError,
    NotFoundError,
)
from ..models import Order, Payment, PaymentAllocation
from ..validation import clean_text, require_choice, require_positive_amount
from . import receivables_service
from .concurrency import lock_for_update, run_in_transaction
from .order_service import PAYMENT_METHOD_CASH, VALID_PAYMENT_METHODS


# =============================================================================
# ALLOCATION TYPES (CONSTANTS)
# =============================================================================

ALLOCATION_SPECIFIC_INVOICE = "specific_invoice"
ALLOCATION_CUSTOMER_TOTAL = "customer_total"


def _check_invoice_payable(invoice: Order, amount: int) -> None:
    if invoice.payment_status == receivables_service.PAYMENT_STATUS_PAID:
        raise AlreadyPaidError()
    if amount > (invoice.due_cents or 0):
        raise AmountExceedsDueError(
            f"Payment amount exceeds the invoice due ({invoice.due_cents} cents)"
        )


def _validate_payment_input(amount_cents, method) -> tuple[int, str]:
    amount = require_positive_amount(amount_cents, "amount_cents")
    normalized = require_choice(method, "method", VALID_PAYMENT_METHODS, default=PAYMENT_METHOD_CASH)
    return amount, normalized


def collect_payment_for_invoice(
    *,
    owner_id: str,
    sale_id: int,
    amount_cents,
    method: str = PAYMENT_METHOD_CASH,
    note: str | None = None,
) -> Payment:
    """
    Collect a payment against one specific invoice.

    WHY: The customer pays a named invoice at the counter. The money goes
    to that invoice only; nothing is spread to other invoices.

    Checks run in this order, all before any write:
    - invoice exists (NotFoundError)
    - invoice is not PAID (AlreadyPaidError)
    - amount <= invoice due (AmountExceedsDueError)
    - invoice has a customer (NoAssociatedCustomerError)
    """
    amount, method = _validate_payment_input(amount_cents, method)
    note = clean_text(note)

    def _op() -> Payment:
        invoice = db.session.query(Order).filter_by(id=sale_id, owner_id=owner_id).first()
        if invoice is None:
            raise NotFoundError(f"Invoice {sale_id} not found")
        _check_invoice_payable(invoice, amount)
        if invoice.customer_id is None:
            raise NoAssociatedCustomerError()

        customer = receivables_service.get_customer(owner_id, invoice.customer_id, lock=True)

        # Re-read under lock; the unlocked read above only told us which customer to lock
        invoice = lock_for_update(
            db.session.query(Order).filter_by(id=sale_id, owner_id=owner_id)
        ).populate_existing().first()
        if invoice is None:
            raise NotFoundError(f"Invoice {sale_id} not found")
        _check_invoice_payable(invoice, amount)

        paid_off = receivables_service.apply_to_invoice(invoice, amount)
        receivables_service.record_collection(
            customer, amount_cents=amount, invoices_paid_off=1 if paid_off else 0
        )

        payment = Payment(
            owner_id=owner_id,
            customer_id=customer.id,
            sale_id=invoice.id,
            amount_cents=amount,
            method=method,
            note=note,
            allocation_type=ALLOCATION_SPECIFIC_INVOICE,
            allocations=[
                PaymentAllocation(
                    position=0,
                    sale_id=invoice.id,
                    invoice_number=invoice.order_number,
                    amount_cents=amount,
                )
            ],
        )
        db.session.add(payment)
        db.session.flush()
        return payment

    payment = run_in_transaction(_op, operation="invoice payment")
    current_app.logger.info(
        "Payment %s collected for invoice %s: amount=%s method=%s",
        payment.id, payment.sale_id, payment.amount_cents, payment.method,
    )
    return payment


def collect_payment_for_customer(
    *,
    owner_id: str,
    customer_id: int,
    amount_cents,
    method: str = PAYMENT_METHOD_CASH,
    note: str | None = None,
) -> Payment:
    """
    Collect a lump-sum payment and spread it across the customer's open
    invoices, oldest first (created_at, then id).

    Each invoice gets min(its due, what is left) until the amount is used
    up. The customer aggregates are updated once with the full amount.
    The payment records every slice in allocation order.
    """
    amount, method = _validate_payment_input(amount_cents, method)
    note = clean_text(note)

    def _op() -> Payment:
        customer = receivables_service.get_customer(owner_id, customer_id, lock=True)
        total_due = customer.total_due_cents or 0
        if total_due <= 0:
            raise NoOutstandingDueError()
        if amount > total_due:
            raise AmountExceedsDueError(
                f"Payment amount exceeds the customer's total due ({total_due} cents)"
            )

        remaining = amount
        paid_off = 0
        allocations = []
        for invoice in receivables_service.open_invoices_fifo(owner_id, customer.id):
            if remaining <= 0:
                break
            due = invoice.due_cents or 0
            if due <= 0:
                continue
            applied = min(due, remaining)
            if receivables_service.apply_to_invoice(invoice, applied):
                paid_off += 1
            allocations.append(PaymentAllocation(
                position=len(allocations),
                sale_id=invoice.id,
                invoice_number=invoice.order_number,
                amount_cents=applied,
            ))
            remaining -= applied

        receivables_service.record_collection(customer, amount_cents=amount, invoices_paid_off=paid_off)

        payment = Payment(
            owner_id=owner_id,
            customer_id=customer.id,
            sale_id=None,
            amount_cents=amount,
            method=method,
            note=note,
            allocation_type=ALLOCATION_CUSTOMER_TOTAL,
            allocations=allocations,
        )
        db.session.add(payment)
        db.session.flush()
        return payment

    payment = run_in_transaction(_op, operation="customer payment")
    current_app.logger.info(
        "Payment %s collected from customer %s: amount=%s across %s invoice(s)",
        payment.id, customer_id, payment.amount_cents, len(payment.allocations),
    )
    return payment


def get_customer_payments(owner_id: str, customer_id: int) -> list[Payment]:
    """Payment history for a customer, newest first."""
    receivables_service.get_customer(owner_id, customer_id)
    return (
        db.session.query(Payment)
        .filter_by(owner_id=owner_id, customer_id=customer_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
