# Overview: Flask API routes for product creation and lookup.

from flask import Blueprint, g, jsonify

from ..decorators import require_owner
from ..services import stock_service
from ..validation import optional_int
from . import json_body


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("")
@require_owner
def create_product_route():
    """
    Create a product.

    Request body:
    {
        "sku": "CBL-USB-C",
        "name": "USB-C Cable",
        "product_type": "PRODUCT" | "SERVICE",
        "price_cents": 1500,
        "purchase_price_cents": 900,
        "stock_quantity": 20,        (opening stock, logged as an IN movement)
        "low_stock_threshold": 5,
        "supplier_id": 3             (optional)
    }
    """
    data = json_body()
    product = stock_service.create_product(
        owner_id=g.owner_id,
        sku=data.get("sku"),
        name=data.get("name"),
        price_cents=data.get("price_cents"),
        purchase_price_cents=data.get("purchase_price_cents", 0),
        stock_quantity=data.get("stock_quantity", 0),
        low_stock_threshold=data.get("low_stock_threshold", 5),
        product_type=data.get("product_type", "PRODUCT"),
        description=data.get("description"),
        category=data.get("category"),
        supplier_id=optional_int(data.get("supplier_id"), "supplier_id", minimum=1),
    )
    return jsonify({"success": True, "product": product.to_dict()}), 201


@products_bp.get("/<int:product_id>")
@require_owner
def get_product_route(product_id: int):
    product = stock_service.get_product(g.owner_id, product_id)
    return jsonify({"success": True, "product": product.to_dict()})
