# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

"""
Order API Routes

Request body for POST /api/orders:
{
    "items": [
        {"product_id": 1, "quantity": 3, "unit_price_cents": 1000},
        {"is_custom": true, "name": "Gift wrap", "quantity": 1, "unit_price_cents": 200}
    ],
    "customer_id": 7,            (optional; walk-in sale when omitted)
    "customer_name": "...",      (optional snapshot)
    "customer_phone": "...",     (optional snapshot)
    "discount_cents": 500,
    "tax_cents": 200,
    "paid_cents": 0,             (optional; defaults to the full total)
    "payment_method": "CASH"
}
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_owner
from ..services import order_service
from ..validation import optional_int
from . import json_body


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_owner
def create_order_route():
    data = json_body()
    order = order_service.create_order(
        owner_id=g.owner_id,
        items=data.get("items"),
        customer_id=optional_int(data.get("customer_id"), "customer_id", minimum=1),
        customer_name=data.get("customer_name"),
        customer_phone=data.get("customer_phone"),
        discount_cents=data.get("discount_cents", 0),
        tax_cents=data.get("tax_cents", 0),
        paid_cents=data.get("paid_cents"),
        payment_method=data.get("payment_method", order_service.PAYMENT_METHOD_CASH),
    )
    return jsonify({"success": True, "order": order.to_dict()}), 201


@orders_bp.get("")
@require_owner
def list_orders_route():
    orders = order_service.list_orders(
        g.owner_id,
        customer_id=optional_int(request.args.get("customer_id"), "customer_id", minimum=1),
        payment_status=request.args.get("payment_status"),
    )
    return jsonify({"success": True, "orders": [o.to_dict() for o in orders]})


@orders_bp.get("/<int:order_id>")
@require_owner
def get_order_route(order_id: int):
    order = order_service.get_order(g.owner_id, order_id)
    return jsonify({"success": True, "order": order.to_dict()})


@orders_bp.delete("/<int:order_id>")
@require_owner
def delete_order_route(order_id: int):
    deleted = order_service.delete_order(owner_id=g.owner_id, order_id=order_id)
    return jsonify({"success": True, "deleted": deleted})
