# Overview: Flask API routes for cashier POS sessions; parses input and returns JSON responses.

# backend/agripos/routes/sessions.py
"""
POS session routes.

A session is scoped to the calling cashier (X-User-Id) at their branch
(X-Branch-Id).
"""

from flask import Blueprint, jsonify, g

from ..auth import require_actor
from ..services import session_service, transaction_service
from ..services.errors import ServiceError
from .responses import internal_error, json_body, service_error


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.post("/current")
@require_actor
def current_session_route():
    """Return the cashier's open session, creating one if none exists."""
    try:
        pos_session = session_service.get_or_create_session(g.actor, commit=True)
        return jsonify({"session": pos_session.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to resolve current session")


@sessions_bp.post("")
@require_actor
def open_session_route():
    """
    Open a session explicitly.

    Body: {"starting_cash_cents": 500000, "notes": "morning shift"}
    """
    try:
        data = json_body()
        pos_session = session_service.open_session(
            g.actor,
            starting_cash_cents=data.get("starting_cash_cents", 0),
            notes=data.get("notes"),
        )
        return jsonify({"session": pos_session.to_dict()}), 201
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to open session")


@sessions_bp.get("/<int:session_id>")
@require_actor
def get_session_route(session_id: int):
    try:
        pos_session = session_service.get_session(session_id)
        return jsonify({"session": pos_session.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)


@sessions_bp.get("/<int:session_id>/transactions")
@require_actor
def session_transactions_route(session_id: int):
    try:
        session_service.get_session(session_id)
        txns = transaction_service.list_session_transactions(session_id)
        return jsonify({
            "transactions": [t.to_dict() for t in txns],
            "count": len(txns),
        }), 200
    except ServiceError as e:
        return service_error(e)


@sessions_bp.get("/<int:session_id>/summary")
@require_actor
def session_summary_route(session_id: int):
    try:
        return jsonify(session_service.session_summary(session_id)), 200
    except ServiceError as e:
        return service_error(e)


@sessions_bp.post("/<int:session_id>/suspend")
@require_actor
def suspend_session_route(session_id: int):
    try:
        pos_session = session_service.suspend_session(session_id, g.actor)
        return jsonify({"session": pos_session.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to suspend session")


@sessions_bp.post("/<int:session_id>/resume")
@require_actor
def resume_session_route(session_id: int):
    try:
        pos_session = session_service.resume_session(session_id, g.actor)
        return jsonify({"session": pos_session.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to resume session")


@sessions_bp.post("/<int:session_id>/close")
@require_actor
def close_session_route(session_id: int):
    """
    Close a session and reconcile the drawer.

    Body: {"ending_cash_cents": 522400, "notes": "..."}
    Returns expected_cash_cents and cash_variance_cents.
    """
    try:
        data = json_body()
        if "ending_cash_cents" not in data:
            return jsonify({"error": "ending_cash_cents is required"}), 400
        pos_session = session_service.close_session(
            session_id,
            g.actor,
            data.get("ending_cash_cents"),
            notes=data.get("notes"),
        )
        return jsonify({"session": pos_session.to_dict()}), 200
    except ServiceError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to close session")
