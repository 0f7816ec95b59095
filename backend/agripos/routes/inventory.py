# backend/agripos/routes/inventory.py
"""
Inventory read routes.

Stock positions are changed by checkout, order completion and the
reservation workflow, never directly through this API.
"""
from flask import Blueprint, jsonify, g

from ..auth import require_actor
from ..services import inventory_service, reservation_service
from ..services.errors import InventoryCheckUnavailable
from .responses import json_body


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/availability")
@require_actor
def availability_route():
    """
    Check whether a set of items is available at a branch.

    Body: {"branch_id": 1, "items": [{"product_id": 1, "quantity": 2}]}
    """
    data = json_body()
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return jsonify({"error": "items must be a non-empty list"}), 400
    branch_id = data.get("branch_id") or g.actor.branch_id

    try:
        result = reservation_service.check_availability(items, branch_id)
        return jsonify(result.to_dict()), 200
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid item: {e}"}), 400
    except InventoryCheckUnavailable as e:
        return jsonify({"error": str(e)}), 503


@inventory_bp.get("/<int:branch_id>/low-stock")
@require_actor
def low_stock_route(branch_id: int):
    rows = inventory_service.get_low_stock(branch_id)
    return jsonify({"items": [inv.to_dict() for inv in rows], "count": len(rows)}), 200


@inventory_bp.get("/<int:branch_id>/<int:product_id>")
@require_actor
def get_inventory_route(branch_id: int, product_id: int):
    inv = inventory_service.get_inventory(branch_id, product_id)
    if inv is None:
        return jsonify({"error": "Inventory record not found"}), 404
    movements = inventory_service.list_movements(branch_id, product_id)
    return jsonify({
        "inventory": inv.to_dict(),
        "movements": [m.to_dict() for m in movements],
    }), 200
