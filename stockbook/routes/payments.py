# Overview: Flask API routes for collecting customer payments.

# stockbook/routes/payments.py
"""
Payment Collection API Routes

- POST /api/payments/invoice: pay one invoice
    {"sale_id": 12, "amount_cents": 500, "method": "CASH", "note": "..."}
- POST /api/payments/customer: pay a customer's dues, oldest invoice first
    {"customer_id": 7, "amount_cents": 2500, "method": "CARD"}

Failures come back as {"success": false, "error": ..., "code": ...}, e.g.
ALREADY_PAID, AMOUNT_EXCEEDS_DUE, NO_OUTSTANDING_DUE.
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_owner
from ..services import payment_service
from ..validation import require_int
from . import json_body


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/invoice")
@require_owner
def pay_invoice_route():
    data = json_body()
    payment = payment_service.collect_payment_for_invoice(
        owner_id=g.owner_id,
        sale_id=require_int(data.get("sale_id"), "sale_id", minimum=1),
        amount_cents=data.get("amount_cents"),
        method=data.get("method", "CASH"),
        note=data.get("note"),
    )
    return jsonify({"success": True, "payment": payment.to_dict()}), 201


@payments_bp.post("/customer")
@require_owner
def pay_customer_route():
    data = json_body()
    payment = payment_service.collect_payment_for_customer(
        owner_id=g.owner_id,
        customer_id=require_int(data.get("customer_id"), "customer_id", minimum=1),
        amount_cents=data.get("amount_cents"),
        method=data.get("method", "CASH"),
        note=data.get("note"),
    )
    return jsonify({"success": True, "payment": payment.to_dict()}), 201
