# Overview: Flask API routes for the stock ledger; manual adjustments and history.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_owner
from ..models.inventory import MOVEMENT_TYPES
from ..services import stock_service
from ..validation import MAX_QUANTITY, clean_text, require_choice, require_int
from . import json_body


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/<int:product_id>/adjust")
@require_owner
def adjust_stock_route(product_id: int):
    """
    Manual stock adjustment.

    Request body:
    {
        "movement_type": "IN" | "OUT" | "ADJUST",
        "quantity": 5,              (ADJUST: the desired absolute stock)
        "reason": "Damaged",        (optional)
        "reference": "..."          (optional)
    }
    """
    data = json_body()
    change = stock_service.adjust_stock(
        owner_id=g.owner_id,
        product_id=product_id,
        movement_type=require_choice(data.get("movement_type"), "movement_type", MOVEMENT_TYPES),
        quantity=require_int(data.get("quantity"), "quantity", minimum=0, maximum=MAX_QUANTITY),
        reason=clean_text(data.get("reason")),
        reference=clean_text(data.get("reference"), max_length=64),
    )
    return jsonify({"success": True, **change.to_dict()})


@stock_bp.put("/<int:product_id>")
@require_owner
def set_stock_route(product_id: int):
    """Stock level typed into the product edit form: {"quantity": 12}."""
    data = json_body()
    change = stock_service.set_product_stock(
        owner_id=g.owner_id,
        product_id=product_id,
        quantity=require_int(data.get("quantity"), "quantity", minimum=0, maximum=MAX_QUANTITY),
    )
    return jsonify({"success": True, **change.to_dict()})


@stock_bp.get("/<int:product_id>/movements")
@require_owner
def stock_movements_route(product_id: int):
    movement_type = request.args.get("type")
    if movement_type:
        movement_type = require_choice(movement_type, "type", MOVEMENT_TYPES)
    movements = stock_service.get_stock_movements(g.owner_id, product_id, movement_type)
    return jsonify({"success": True, "movements": [m.to_dict() for m in movements]})


@stock_bp.get("/low")
@require_owner
def low_stock_route():
    products = stock_service.get_low_stock_products(g.owner_id)
    return jsonify({"success": True, "products": [p.to_dict() for p in products]})
