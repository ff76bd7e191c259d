# Overview: Service-layer operations for sales orders (invoices); stock OUT plus receivables in one transaction.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStockError, NotFoundError, ProductNotFoundError, ValidationError
from ..models import Order, OrderLine
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..validation import clean_text, normalize_order_items, optional_int, require_amount, require_choice
from . import receivables_service, stock_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_order_number
"""
Order Engine

WHY: A sale touches three ledgers at once: product stock, the invoice
itself, and the customer's receivable aggregates. They either all move or
none do.

LOCK ORDER (every engine uses the same one):
    products (ascending id) -> customer -> orders

Custom lines (no product link) never touch stock. SERVICE products are
sold like any other line but the stock ledger skips them.
"""


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

PAYMENT_METHOD_CASH = "CASH"
PAYMENT_METHOD_CARD = "CARD"
PAYMENT_METHOD_MOBILE_BANKING = "MOBILE_BANKING"
PAYMENT_METHOD_OTHER = "OTHER"

VALID_PAYMENT_METHODS = {
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_MOBILE_BANKING,
    PAYMENT_METHOD_OTHER,
}


def _sale_reason(order_number: str) -> str:
    return f"Sale via POS (Invoice: {order_number})"


def _sale_return_reason(order_number: str) -> str:
    return f"Sale Deleted (Invoice: {order_number})"


def _preflight(items: list[dict], products: dict) -> None:
    """Every referenced product exists and has enough stock, checked before any write."""
    requested: dict[int, int] = {}
    for item in items:
        if item["is_custom"]:
            continue
        requested[item["product_id"]] = requested.get(item["product_id"], 0) + item["quantity"]

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.is_stock_tracked and quantity > (product.stock_quantity or 0):
            raise InsufficientStockError(product.id, product.name, quantity, product.stock_quantity or 0)


def create_order(
    *,
    owner_id: str,
    items,
    customer_id: int | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    discount_cents=0,
    tax_cents=0,
    paid_cents=None,
    payment_method: str = PAYMENT_METHOD_CASH,
) -> Order:
    """
    Create a sale.

    Totals are computed here from the lines; client totals are never
    trusted. paid defaults to the full total (walk-in cash sale) and is
    capped at it.

    Raises ValidationError, ProductNotFoundError, InsufficientStockError,
    NotFoundError (customer) or LedgerConflictError. Nothing is written on
    failure.
    """
    lines_in = normalize_order_items(items)
    discount = require_amount(discount_cents, "discount_cents", default=0)
    tax = require_amount(tax_cents, "tax_cents", default=0)
    requested_paid = optional_int(paid_cents, "paid_cents", minimum=0)
    method = require_choice(payment_method, "payment_method", VALID_PAYMENT_METHODS, default=PAYMENT_METHOD_CASH)

    def _op() -> Order:
        products = stock_service.lock_products(
            owner_id, [item["product_id"] for item in lines_in if not item["is_custom"]]
        )
        _preflight(lines_in, products)

        customer = None
        if customer_id is not None:
            customer = receivables_service.get_customer(owner_id, customer_id, lock=True)

        order_lines = []
        subtotal = 0
        for item in lines_in:
            product = None if item["is_custom"] else products[item["product_id"]]
            unit_price = item["unit_price_cents"]
            if unit_price is None:
                unit_price = product.price_cents
            line_total = unit_price * item["quantity"]
            subtotal += line_total
            order_lines.append(OrderLine(
                product_id=None if product is None else product.id,
                is_custom=item["is_custom"],
                name=item["name"] or product.name,
                sku=item["sku"] or (product.sku if product is not None else None),
                unit_price_cents=unit_price,
                purchase_price_cents=0 if product is None else (product.purchase_price_cents or 0),
                quantity=item["quantity"],
                line_total_cents=line_total,
            ))

        total = max(0, subtotal - discount + tax)
        paid, due = receivables_service.split_amounts(total, requested_paid)

        order = Order(
            owner_id=owner_id,
            order_number=next_order_number(),
            customer_id=customer.id if customer is not None else None,
            customer_name=clean_text(customer_name) or (customer.name if customer is not None else None),
            customer_phone=clean_text(customer_phone, max_length=32) or (customer.phone if customer is not None else None),
            subtotal_cents=subtotal,
            discount_cents=discount,
            tax_cents=tax,
            total_cents=total,
            paid_cents=paid,
            due_cents=due,
            payment_method=method,
            payment_status=receivables_service.derive_payment_status(paid, due),
            lines=order_lines,
        )
        db.session.add(order)

        if customer is not None:
            receivables_service.record_invoice(customer, paid_cents=paid, due_cents=due)

        for item in lines_in:
            if item["is_custom"]:
                continue
            stock_service.apply_movement_to_product(
                products[item["product_id"]],
                MOVEMENT_OUT,
                item["quantity"],
                reason=_sale_reason(order.order_number),
                reference=order.order_number,
            )

        db.session.flush()
        return order

    order = run_in_transaction(_op, operation="create order")
    current_app.logger.info(
        "Order %s created: total=%s paid=%s due=%s status=%s",
        order.order_number, order.total_cents, order.paid_cents, order.due_cents, order.payment_status,
    )
    return order


def delete_order(*, owner_id: str, order_id: int) -> dict:
    """
    Delete a sale and undo its ledger effects.

    - Stock-linked lines are returned with IN movements (reference = order number)
    - Customer aggregates are reversed using the invoice's current paid/due
    - Payments recorded against the invoice stay in the audit trail
    """
    def _op() -> dict:
        snapshot = get_order(owner_id, order_id)
        product_ids = [line.product_id for line in snapshot.lines if not line.is_custom and line.product_id]
        products = stock_service.lock_products(owner_id, product_ids)

        customer = None
        if snapshot.customer_id is not None:
            customer = receivables_service.get_customer(owner_id, snapshot.customer_id, lock=True)

        order = lock_for_update(
            db.session.query(Order).filter_by(id=order_id, owner_id=owner_id)
        ).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        for line in order.lines:
            if line.is_custom or line.product_id is None:
                continue
            stock_service.apply_movement_to_product(
                products[line.product_id],
                MOVEMENT_IN,
                line.quantity,
                reason=_sale_return_reason(order.order_number),
                reference=order.order_number,
            )

        if customer is not None:
            receivables_service.reverse_invoice(
                customer, paid_cents=order.paid_cents or 0, due_cents=order.due_cents or 0
            )

        result = {"id": order.id, "order_number": order.order_number}
        db.session.delete(order)
        db.session.flush()
        return result

    result = run_in_transaction(_op, operation="delete order")
    current_app.logger.info("Order %s deleted", result["order_number"])
    return result


def get_order(owner_id: str, order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id, owner_id=owner_id).first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def list_orders(owner_id: str, customer_id: int | None = None, payment_status: str | None = None) -> list[Order]:
    """Orders newest first, optionally filtered by customer and payment status."""
    query = db.session.query(Order).filter(Order.owner_id == owner_id)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    if payment_status:
        status = payment_status.upper()
        if status not in (
            receivables_service.PAYMENT_STATUS_PAID,
            receivables_service.PAYMENT_STATUS_PARTIAL,
            receivables_service.PAYMENT_STATUS_UNPAID,
        ):
            raise ValidationError(f"Invalid payment_status: {payment_status}")
        query = query.filter(Order.payment_status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
