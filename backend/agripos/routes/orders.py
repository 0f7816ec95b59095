# Overview: Flask API routes for online orders; parses input and returns JSON responses.

# backend/agripos/routes/orders.py
"""
Online order routes.

Status changes go through order_service, which enforces the state machine:
an illegal transition returns 409 and insufficient stock on confirm returns
409 with the structured missing_items list.
"""

from flask import Blueprint, current_app, jsonify, g, request

from ..auth import require_actor
from ..services import order_service
from ..services.errors import ServiceError
from agripos.time_utils import parse_iso_datetime
from .responses import internal_error, json_body, optional_bool, service_error


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_actor
def create_order_route():
    """
    Place an online order.

    Body:
    {
        "branch_id": 1,
        "order_type": "pickup" | "delivery" | "reservation",
        "customer_name": "...", "customer_phone": "...", "customer_address": "...",
        "payment_method": "cash",
        "items": [{"product_id": 1, "quantity": 2}]
    }
    """
    try:
        data = json_body()
        if "branch_id" not in data:
            data["branch_id"] = g.actor.branch_id
        order = order_service.create_order(data, g.actor)
        return jsonify({"order": order.to_dict(include_items=True)}), 201
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create order")


@orders_bp.get("")
@require_actor
def list_orders_route():
    """
    List orders.

    Query params: status, order_type, customer (name/phone/number substring),
    from, to (ISO-8601), branch_id (defaults to the caller's branch),
    limit, offset.
    """
    try:
        try:
            from_date = parse_iso_datetime(request.args.get("from"))
            to_date = parse_iso_datetime(request.args.get("to"))
        except ValueError:
            return jsonify({"error": "from/to must be ISO-8601 datetimes"}), 400

        orders, total = order_service.list_orders(
            branch_id=request.args.get("branch_id", type=int) or g.actor.branch_id,
            status=request.args.get("status") or None,
            order_type=request.args.get("order_type") or None,
            customer=request.args.get("customer") or None,
            from_date=from_date,
            to_date=to_date,
            limit=request.args.get("limit", default=50, type=int),
            offset=request.args.get("offset", default=0, type=int),
        )
        return jsonify({
            "orders": [o.to_dict() for o in orders],
            "total": total,
        }), 200
    except ServiceError as e:
        return service_error(e)


@orders_bp.get("/pending-count")
@require_actor
def pending_count_route():
    """Pending-confirmation count for the polling client."""
    branch_id = request.args.get("branch_id", type=int) or g.actor.branch_id
    return jsonify({
        "branch_id": branch_id,
        "count": order_service.pending_orders_count(branch_id),
        "poll_interval_seconds": current_app.config.get("ORDER_POLL_INTERVAL_SECONDS", 30),
    }), 200


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        data = order.to_dict(include_items=True)
        data["status_history"] = [h.to_dict() for h in order_service.get_status_history(order_id)]
        return jsonify({"order": data}), 200
    except ServiceError as e:
        return service_error(e)


@orders_bp.post("/<int:order_id>/confirm")
@require_actor
def confirm_order_route(order_id: int):
    try:
        result = order_service.confirm_order(order_id, g.actor)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to confirm order")


@orders_bp.post("/<int:order_id>/request-payment")
@require_actor
def request_payment_route(order_id: int):
    try:
        data = json_body()
        result = order_service.request_payment(order_id, g.actor, reference=data.get("payment_reference"))
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to request payment")


@orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order_route(order_id: int):
    """Body: {"reason": "customer_request"}"""
    try:
        data = json_body()
        result = order_service.cancel_order(order_id, g.actor, data.get("reason"))
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to cancel order")


@orders_bp.post("/<int:order_id>/ready")
@require_actor
def mark_ready_route(order_id: int):
    try:
        result = order_service.mark_ready(order_id, g.actor)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to mark order ready")


@orders_bp.post("/<int:order_id>/dispatch")
@require_actor
def dispatch_order_route(order_id: int):
    try:
        result = order_service.dispatch_order(order_id, g.actor)
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to dispatch order")


@orders_bp.post("/<int:order_id>/remind")
@require_actor
def remind_order_route(order_id: int):
    """Remind the customer that a ready order is waiting."""
    try:
        sent = order_service.send_reminder(order_id, g.actor)
        return jsonify({"order_id": order_id, "sent": sent}), 200
    except ServiceError as e:
        return service_error(e)


@orders_bp.post("/<int:order_id>/complete")
@require_actor
def complete_order_route(order_id: int):
    """
    Complete an order into a POS sale.

    Body (all optional): payment_method, cash_tendered_cents,
    reference_number, allow_partial_stock.
    """
    try:
        data = json_body()
        result = order_service.complete_order(
            order_id,
            g.actor,
            payment_method=data.get("payment_method"),
            cash_tendered_cents=data.get("cash_tendered_cents"),
            reference_number=data.get("reference_number"),
            allow_partial_stock=optional_bool(data, "allow_partial_stock"),
        )
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to complete order")
