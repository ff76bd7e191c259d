# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

"""
Purchase API Routes

Request body for POST /api/purchases (PUT takes the same fields, all optional):
{
    "supplier_id": 3,
    "items": [{"product_id": 1, "quantity": 5, "purchase_price_cents": 700}],
    "total_cents": 3500,        (optional; defaults to the sum of lines)
    "paid_cents": 1000,
    "status": "COMPLETED",      (PENDING, COMPLETED, CANCELLED)
    "purchase_number": "...",   (optional; generated when omitted)
    "notes": "..."
}
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_owner
from ..services import purchase_service
from ..validation import optional_int
from . import json_body


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_owner
def create_purchase_route():
    data = json_body()
    purchase = purchase_service.create_purchase(
        owner_id=g.owner_id,
        supplier_id=data.get("supplier_id"),
        items=data.get("items"),
        total_cents=data.get("total_cents"),
        paid_cents=data.get("paid_cents", 0),
        status=data.get("status", purchase_service.PURCHASE_STATUS_COMPLETED),
        purchase_number=data.get("purchase_number"),
        notes=data.get("notes"),
    )
    return jsonify({"success": True, "purchase": purchase.to_dict()}), 201


@purchases_bp.get("")
@require_owner
def list_purchases_route():
    purchases = purchase_service.list_purchases(
        g.owner_id,
        supplier_id=optional_int(request.args.get("supplier_id"), "supplier_id", minimum=1),
    )
    return jsonify({"success": True, "purchases": [p.to_dict() for p in purchases]})


@purchases_bp.get("/<int:purchase_id>")
@require_owner
def get_purchase_route(purchase_id: int):
    purchase = purchase_service.get_purchase(g.owner_id, purchase_id)
    return jsonify({"success": True, "purchase": purchase.to_dict()})


@purchases_bp.put("/<int:purchase_id>")
@require_owner
def update_purchase_route(purchase_id: int):
    data = json_body()
    purchase = purchase_service.update_purchase(
        owner_id=g.owner_id,
        purchase_id=purchase_id,
        supplier_id=data.get("supplier_id"),
        items=data.get("items"),
        total_cents=data.get("total_cents"),
        paid_cents=data.get("paid_cents"),
        status=data.get("status"),
        notes=data.get("notes"),
    )
    return jsonify({"success": True, "purchase": purchase.to_dict()})


@purchases_bp.delete("/<int:purchase_id>")
@require_owner
def delete_purchase_route(purchase_id: int):
    deleted = purchase_service.delete_purchase(owner_id=g.owner_id, purchase_id=purchase_id)
    return jsonify({"success": True, "deleted": deleted})
