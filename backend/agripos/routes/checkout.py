# Overview: Flask API route for cashier checkout; parses input and returns JSON responses.

# backend/agripos/routes/checkout.py
"""Cashier checkout: one request turns a cart into a committed sale."""

from flask import Blueprint, jsonify, g

from ..auth import require_actor
from ..services import checkout_service
from ..services.errors import ServiceError
from .responses import internal_error, json_body, optional_bool, service_error


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.post("")
@require_actor
def checkout_route():
    """
    Check out a cart.

    Body:
    {
        "items": [{"product_id": 1, "quantity": 2, "discount_cents": 0}],
        "payment_method": "cash",
        "cash_tendered_cents": 30000,
        "reference_number": null,
        "customer_id": null,
        "allow_partial_stock": true
    }

    Returns 201 with the transaction, change due and per-item stock results.
    """
    try:
        data = json_body()
        result = checkout_service.checkout(
            g.actor,
            data,
            allow_partial_stock=optional_bool(data, "allow_partial_stock"),
        )
        return jsonify(result.to_dict()), 201

    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Checkout failed")
