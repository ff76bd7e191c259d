from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data plus the receivables aggregates.

    MULTI-TENANT: Customers are scoped to an owner via owner_id.

    Denormalized aggregates (written only by the receivables ledger, inside
    the same transaction as the order/payment rows they summarize):
    - total_due_cents == SUM(orders.due_cents) for this customer
    - unpaid_invoice_count == COUNT(orders) with payment_status UNPAID/PARTIAL
    - invoice_count == COUNT(orders)
    - total_paid_cents == SUM(orders.paid_cents)
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_owner_name", "owner_id", "name"),
        db.Index("ix_customers_owner_phone", "owner_id", "phone"),
        db.CheckConstraint("total_due_cents >= 0", name="ck_customers_due_non_negative"),
        db.CheckConstraint("total_paid_cents >= 0", name="ck_customers_paid_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")

    total_due_cents = db.Column(db.Integer, nullable=False, default=0)
    total_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    invoice_count = db.Column(db.Integer, nullable=False, default=0)
    unpaid_invoice_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "status": self.status,
            "total_due_cents": self.total_due_cents,
            "total_paid_cents": self.total_paid_cents,
            "invoice_count": self.invoice_count,
            "unpaid_invoice_count": self.unpaid_invoice_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
