# Overview: Flask API routes for sale records; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..auth import require_actor
from ..services import transaction_service
from ..services.errors import ServiceError
from .responses import internal_error, json_body, service_error


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("/<int:transaction_id>")
@require_actor
def get_transaction_route(transaction_id: int):
    try:
        txn = transaction_service.get_transaction(transaction_id)
        return jsonify({"transaction": txn.to_dict(include_lines=True)}), 200
    except ServiceError as e:
        return service_error(e)


@transactions_bp.post("/<int:transaction_id>/void")
@require_actor
def void_transaction_route(transaction_id: int):
    """
    Void a transaction.

    Body: {"reason": "wrong item scanned"}
    Stock is not restored by a void.
    """
    try:
        data = json_body()
        txn = transaction_service.void_transaction(transaction_id, data.get("reason"), g.actor)
        return jsonify({"transaction": txn.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to void transaction")
