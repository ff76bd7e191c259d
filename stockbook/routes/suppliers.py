# Overview: Flask API routes for suppliers.

from flask import Blueprint, g, jsonify

from ..decorators import require_owner
from ..services import supplier_service


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.delete("/<int:supplier_id>")
@require_owner
def delete_supplier_route(supplier_id: int):
    supplier_service.delete_supplier(owner_id=g.owner_id, supplier_id=supplier_id)
    return jsonify({"success": True})
