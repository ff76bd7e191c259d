# Overview: Flask API routes for customer receivables views.

from flask import Blueprint, g, jsonify

from ..decorators import require_owner
from ..services import customer_service, payment_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/due-summary")
@require_owner
def due_summary_route():
    return jsonify({"success": True, "summary": customer_service.get_customer_due_summary(g.owner_id)})


@customers_bp.get("/<int:customer_id>/invoices")
@require_owner
def customer_invoices_route(customer_id: int):
    invoices = customer_service.get_customer_invoices(g.owner_id, customer_id)
    return jsonify({"success": True, "invoices": [i.to_dict() for i in invoices]})


@customers_bp.get("/<int:customer_id>/payments")
@require_owner
def customer_payments_route(customer_id: int):
    payments = payment_service.get_customer_payments(g.owner_id, customer_id)
    return jsonify({"success": True, "payments": [p.to_dict() for p in payments]})


@customers_bp.delete("/<int:customer_id>")
@require_owner
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(owner_id=g.owner_id, customer_id=customer_id)
    return jsonify({"success": True})
