from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..extensions import db
from ..errors import InvariantViolationError
from stockbook.time_utils import to_utc_z, utcnow


class Order(db.Model):
    """
    Sale / invoice document.

    Amounts (cents):
    - total_cents = max(0, subtotal_cents - discount_cents + tax_cents)
    - due_cents = max(0, total_cents - paid_cents)
    - payment_status: PAID when due is 0, PARTIAL when something was paid,
      UNPAID otherwise

    Orders without customer_id are walk-in sales and never receive ledger
    payments.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        # FIFO lookup of outstanding invoices per customer
        db.Index("ix_orders_customer_status_created", "customer_id", "payment_status", "created_at"),
        db.Index("ix_orders_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)

    order_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    due_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    payment_status = db.Column(db.String(16), nullable=False, default="PAID", index=True)  # PAID, PARTIAL, UNPAID

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy="dynamic"))
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "due_cents": self.due_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderLine(db.Model):
    """Individual line items on an order. Custom lines have no product link."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    is_custom = db.Column(db.Boolean, nullable=False, default=False)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Cost snapshot at time of sale (profit reporting)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "is_custom": self.is_custom,
            "name": self.name,
            "sku": self.sku,
            "unit_price_cents": self.unit_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }


class Payment(db.Model):
    """
    Customer payment audit record.

    allocation_type:
    - specific_invoice: collected against one invoice (sale_id set)
    - customer_total: spread FIFO across the customer's open invoices

    sale_id and PaymentAllocation.sale_id carry no foreign key: payment
    history is kept after the invoice it paid is deleted.

    IMMUTABLE: Payments and their allocations are never updated or deleted.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_customer_created", "customer_id", "created_at"),
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False, default="CASH")
    note = db.Column(db.String(255), nullable=True)
    allocation_type = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    allocations = db.relationship(
        "PaymentAllocation",
        back_populates="payment",
        order_by="PaymentAllocation.position",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "note": self.note,
            "allocation_type": self.allocation_type,
            "allocation_details": [a.to_dict() for a in self.allocations],
            "created_at": to_utc_z(self.created_at),
        }


class PaymentAllocation(db.Model):
    """One slice of a payment applied to one invoice, in allocation order."""
    __tablename__ = "payment_allocations"
    __table_args__ = (
        db.UniqueConstraint("payment_id", "position", name="uq_payment_allocations_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    sale_id = db.Column(db.Integer, nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    payment = db.relationship("Payment", back_populates="allocations")

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "amount_cents": self.amount_cents,
        }


@event.listens_for(Payment, "before_update")
@event.listens_for(PaymentAllocation, "before_update")
def _prevent_payment_update(mapper, connection, target):
    # Collection-only changes (allocations appended) are not row updates
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise InvariantViolationError(f"{type(target).__name__} {target.id} is immutable")


@event.listens_for(Payment, "before_delete")
@event.listens_for(PaymentAllocation, "before_delete")
def _prevent_payment_delete(mapper, connection, target):
    raise InvariantViolationError(f"{type(target).__name__} {target.id} cannot be deleted")
