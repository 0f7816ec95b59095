# Overview: Online order lifecycle; confirmation, reservations, completion into a sale, notifications.

"""
Order lifecycle controller

    pending_confirmation --request_payment--> for_payment
    pending_confirmation | for_payment --confirm--> confirmed
    pending_confirmation | for_payment | confirmed --cancel--> cancelled
    confirmed --mark_ready--> ready_for_pickup
    confirmed --dispatch--> for_dispatch            (delivery orders)
    ready_for_pickup | for_dispatch --complete--> completed

completed and cancelled are terminal. Every transition writes an
OrderStatusHistory row in the same unit of work as the status change.
Customer notifications go out only after the commit.

Completion reuses the cashier checkout commit path (transaction writer,
stock decrement, session totals) so both sales channels produce identical
sale records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Branch, OnlineOrder, OrderItem, OrderStatusHistory
from agripos.auth import ActorContext
from agripos.notifications import (
    TYPE_CANCELLATION,
    TYPE_CONFIRMATION,
    TYPE_READY,
    TYPE_REMINDER,
    notify_order,
)
from agripos.time_utils import utcnow
from .checkout_service import CheckoutResult, build_cart, commit_sale, vat_rate_bps
from .concurrency import ItemResult, lock_for_update, run_with_retry
from .document_service import ORDER_PREFIX, next_document_number
from .errors import (
    InsufficientInventoryError,
    InvalidOrderTransition,
    InventoryCheckUnavailable,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from . import reservation_service, session_service, transaction_service


# =============================================================================
# ORDER STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "pending_confirmation"
STATUS_FOR_PAYMENT = "for_payment"
STATUS_CONFIRMED = "confirmed"
STATUS_READY = "ready_for_pickup"
STATUS_FOR_DISPATCH = "for_dispatch"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = [
    STATUS_PENDING,
    STATUS_FOR_PAYMENT,
    STATUS_CONFIRMED,
    STATUS_READY,
    STATUS_FOR_DISPATCH,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
]

ORDER_TYPES = ["pickup", "delivery", "reservation"]

# action -> statuses it may start from
TRANSITIONS = {
    "confirm": (STATUS_PENDING, STATUS_FOR_PAYMENT),
    "request_payment": (STATUS_PENDING,),
    "cancel": (STATUS_PENDING, STATUS_FOR_PAYMENT, STATUS_CONFIRMED),
    "mark_ready": (STATUS_CONFIRMED,),
    "dispatch": (STATUS_CONFIRMED,),
    "complete": (STATUS_READY, STATUS_FOR_DISPATCH),
}

# Ready time: base + delivery surcharge + one block per started 5 units
BASE_PREP_MINUTES = 15
DELIVERY_EXTRA_MINUTES = 30
UNITS_PER_BLOCK = 5
MINUTES_PER_BLOCK = 5


@dataclass
class OrderResult:
    order: OnlineOrder
    item_results: list[ItemResult] = field(default_factory=list)
    checkout: CheckoutResult | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "order": self.order.to_dict(include_items=True),
            "item_results": [r.to_dict() for r in self.item_results],
            "warnings": self.warnings,
        }
        if self.checkout is not None:
            data["transaction"] = self.checkout.to_dict()
        return data


def calculate_ready_time(order_type: str, item_count, now: datetime | None = None) -> datetime:
    """
    Estimated ready time:
        15 min, +30 min for delivery, +5 min per started block of 5 units.

    calculate_ready_time("pickup", 3) -> now + 20 min
    """
    now = now or utcnow()
    units = Decimal(str(item_count or 0))
    if units < 0:
        raise ValidationError("item_count cannot be negative")

    minutes = BASE_PREP_MINUTES
    if order_type == "delivery":
        minutes += DELIVERY_EXTRA_MINUTES
    minutes += math.ceil(units / UNITS_PER_BLOCK) * MINUTES_PER_BLOCK
    return now + timedelta(minutes=minutes)


def _record_history(order: OnlineOrder, from_status: str | None, to_status: str, actor: ActorContext | None, note=None):
    db.session.add(OrderStatusHistory(
        order_id=order.id,
        from_status=from_status,
        to_status=to_status,
        actor_user_id=actor.user_id if actor else None,
        note=note,
        created_at=utcnow(),
    ))


def _set_status(order: OnlineOrder, to_status: str, actor: ActorContext | None, note: str | None = None) -> None:
    from_status = order.status
    order.status = to_status
    _record_history(order, from_status, to_status, actor, note)


def _locked_order(order_id: int, action: str) -> OnlineOrder:
    order = lock_for_update(db.session.query(OnlineOrder).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    if order.status not in TRANSITIONS[action]:
        raise InvalidOrderTransition(order.id, order.status, action)
    return order


def _run(op):
    """Run an order operation with retry; roll back on domain errors."""
    def _guarded():
        try:
            return op()
        except ServiceError:
            db.session.rollback()
            raise

    return run_with_retry(_guarded)


def get_order(order_id: int) -> OnlineOrder:
    order = db.session.get(OnlineOrder, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def create_order(payload: dict, actor: ActorContext | None = None) -> OnlineOrder:
    """
    Place an order in pending_confirmation.

    Prices and totals are computed here from product prices at the
    configured VAT rate; client-supplied amounts are ignored.
    """
    branch_id = payload.get("branch_id")
    if not isinstance(branch_id, int) or isinstance(branch_id, bool):
        raise ValidationError("branch_id is required")
    if db.session.get(Branch, branch_id) is None:
        raise NotFoundError(f"Branch {branch_id} not found")

    order_type = payload.get("order_type") or "pickup"
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"Invalid order_type: {order_type}", details={"valid_types": ORDER_TYPES})
    if order_type == "delivery" and not payload.get("customer_address"):
        raise ValidationError("customer_address is required for delivery orders")

    payment_method = payload.get("payment_method") or transaction_service.METHOD_CASH
    if payment_method not in transaction_service.VALID_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method: {payment_method}",
            details={"valid_methods": transaction_service.VALID_PAYMENT_METHODS},
        )

    def _op():
        cart = build_cart(payload.get("items"))
        rate = vat_rate_bps()
        notes_by_product = {
            line.get("product_id"): line.get("notes")
            for line in payload.get("items") or []
            if isinstance(line, dict)
        }

        order = OnlineOrder(
            order_number=next_document_number(branch_id=branch_id, prefix=ORDER_PREFIX),
            customer_id=payload.get("customer_id"),
            customer_name=payload.get("customer_name"),
            customer_phone=payload.get("customer_phone"),
            customer_email=payload.get("customer_email"),
            customer_address=payload.get("customer_address"),
            branch_id=branch_id,
            order_type=order_type,
            status=STATUS_PENDING,
            payment_status="pending",
            payment_method=payment_method,
            payment_reference=payload.get("payment_reference"),
            subtotal_cents=cart.subtotal_cents,
            discount_cents=cart.discount_cents,
            tax_cents=cart.tax_cents(rate),
            total_cents=cart.total_cents(rate),
            special_instructions=payload.get("special_instructions"),
        )
        db.session.add(order)
        db.session.flush()

        for line in cart.lines:
            db.session.add(OrderItem(
                order_id=order.id,
                notes=notes_by_product.get(line.product_id),
                **line.to_item_data(),
            ))
        _record_history(order, None, STATUS_PENDING, actor, "Order placed")
        db.session.commit()
        current_app.logger.info("Order %s placed at branch %s", order.order_number, branch_id)
        return order

    return _run(_op)


def confirm_order(order_id: int, actor: ActorContext, *, now: datetime | None = None) -> OrderResult:
    """
    Confirm an order: check stock, set the ready time, reserve inventory.

    When the availability check cannot run at all, confirmation proceeds
    without it and a warning is logged.
    """
    def _op():
        warnings: list[str] = []
        order = _locked_order(order_id, "confirm")

        try:
            availability = reservation_service.check_availability(order.items, order.branch_id)
        except InventoryCheckUnavailable as exc:
            current_app.logger.warning(
                "Inventory check unavailable for order %s; confirming without it: %s",
                order.order_number,
                exc,
            )
            warnings.append("inventory_check_skipped")
        else:
            if not availability.available:
                raise InsufficientInventoryError(
                    f"Insufficient inventory to confirm order {order.order_number}",
                    missing_items=availability.missing_items,
                )

        confirmed_at = now or utcnow()
        order.estimated_ready_time = calculate_ready_time(order.order_type, order.unit_count, confirmed_at)
        order.confirmed_at = confirmed_at
        order.confirmed_by = actor.user_id
        _set_status(order, STATUS_CONFIRMED, actor)

        results = reservation_service.reserve(
            order_id=order.id,
            branch_id=order.branch_id,
            items=order.items,
            actor=actor,
            now=confirmed_at,
        )
        if any(not r.success for r in results):
            warnings.append("reservation_incomplete")

        db.session.commit()
        current_app.logger.info("Order %s confirmed by user %s", order.order_number, actor.user_id)
        return OrderResult(order=order, item_results=results, warnings=warnings)

    result = _run(_op)
    notify_order(result.order, TYPE_CONFIRMATION, actor.user_id)
    return result


def request_payment(order_id: int, actor: ActorContext, reference: str | None = None) -> OrderResult:
    """Hold an order for payment verification (digital payments)."""
    def _op():
        order = _locked_order(order_id, "request_payment")
        order.payment_status = "awaiting_verification"
        if reference:
            order.payment_reference = reference
        _set_status(order, STATUS_FOR_PAYMENT, actor)
        db.session.commit()
        return OrderResult(order=order)

    return _run(_op)


def cancel_order(order_id: int, actor: ActorContext, reason: str) -> OrderResult:
    if not reason or not str(reason).strip():
        raise ValidationError("A cancellation reason is required")
    reason = str(reason).strip()

    def _op():
        order = _locked_order(order_id, "cancel")
        results = reservation_service.release(order_id=order.id, actor=actor)

        order.cancelled_at = utcnow()
        order.cancelled_by = actor.user_id
        order.cancellation_reason = reason
        _set_status(order, STATUS_CANCELLED, actor, reason)
        db.session.commit()
        current_app.logger.info("Order %s cancelled: %s", order.order_number, reason)
        return OrderResult(order=order, item_results=results)

    result = _run(_op)
    notify_order(result.order, TYPE_CANCELLATION, actor.user_id)
    return result


def mark_ready(order_id: int, actor: ActorContext) -> OrderResult:
    def _op():
        order = _locked_order(order_id, "mark_ready")
        order.ready_at = utcnow()
        order.ready_by = actor.user_id
        _set_status(order, STATUS_READY, actor)
        db.session.commit()
        return OrderResult(order=order)

    result = _run(_op)
    notify_order(result.order, TYPE_READY, actor.user_id)
    return result


def dispatch_order(order_id: int, actor: ActorContext) -> OrderResult:
    def _op():
        order = _locked_order(order_id, "dispatch")
        if order.order_type != "delivery":
            raise InvalidOrderTransition(order.id, order.status, "dispatch a non-delivery")
        order.dispatched_at = utcnow()
        order.dispatched_by = actor.user_id
        _set_status(order, STATUS_FOR_DISPATCH, actor)
        db.session.commit()
        return OrderResult(order=order)

    result = _run(_op)
    notify_order(result.order, TYPE_READY, actor.user_id)
    return result


def complete_order(
    order_id: int,
    actor: ActorContext,
    *,
    payment_method: str | None = None,
    cash_tendered_cents: int | None = None,
    reference_number: str | None = None,
    allow_partial_stock: bool | None = None,
) -> OrderResult:
    """
    Convert a ready order into a POS sale in one unit of work:

    session -> transaction -> stock decrement -> session totals ->
    reservation fulfil -> order completed.
    """
    def _op():
        order = _locked_order(order_id, "complete")
        if order.branch_id != actor.branch_id:
            raise ValidationError(
                "Order belongs to a different branch",
                details={"order_branch_id": order.branch_id, "actor_branch_id": actor.branch_id},
            )

        pos_session = session_service.get_or_create_session(actor)
        data = {
            "customer_id": order.customer_id,
            "order_id": order.id,
            "transaction_source": transaction_service.SOURCE_ONLINE_ORDER,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_sku": item.product_sku,
                    "unit_of_measure": item.unit_of_measure,
                    "quantity": item.quantity,
                    "weight_kg": item.weight_kg,
                    "unit_price_cents": item.unit_price_cents,
                    "discount_cents": item.discount_cents,
                    "line_total_cents": item.line_total_cents,
                }
                for item in order.items
            ],
            "subtotal_cents": order.subtotal_cents,
            "discount_cents": order.discount_cents,
            "tax_cents": order.tax_cents,
            "total_cents": order.total_cents,
            "payment_method": payment_method or order.payment_method,
            "cash_tendered_cents": cash_tendered_cents,
            "reference_number": reference_number or order.payment_reference,
            "notes": f"Online order {order.order_number}",
        }
        stock_items = [{"product_id": item.product_id, "quantity": item.stock_quantity} for item in order.items]

        checkout = commit_sale(
            actor=actor,
            pos_session=pos_session,
            data=data,
            stock_items=stock_items,
            allow_partial_stock=allow_partial_stock,
        )
        results = reservation_service.fulfil(order_id=order.id, actor=actor)

        txn = checkout.transaction
        order.completed_at = utcnow()
        order.completed_by = actor.user_id
        order.transaction_id = txn.id
        order.payment_status = "paid"
        _set_status(order, STATUS_COMPLETED, actor, f"Transaction {txn.transaction_number}")
        db.session.commit()
        current_app.logger.info(
            "Order %s completed as transaction %s", order.order_number, txn.transaction_number
        )
        return OrderResult(order=order, item_results=results, checkout=checkout)

    return _run(_op)


def send_reminder(order_id: int, actor: ActorContext | None = None) -> bool:
    """Remind the customer about an order waiting to be collected."""
    order = get_order(order_id)
    if order.status != STATUS_READY:
        raise InvalidOrderTransition(order.id, order.status, "remind")
    return notify_order(order, TYPE_REMINDER, actor.user_id if actor else None)


def pending_orders_count(branch_id: int | None = None) -> int:
    query = db.session.query(func.count(OnlineOrder.id)).filter(OnlineOrder.status == STATUS_PENDING)
    if branch_id:
        query = query.filter(OnlineOrder.branch_id == branch_id)
    return query.scalar() or 0


def list_orders(
    *,
    branch_id: int | None = None,
    status: str | None = None,
    order_type: str | None = None,
    customer: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[OnlineOrder], int]:
    """List orders newest first with optional filters; returns (orders, total)."""
    if status and status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status: {status}", details={"valid_statuses": ORDER_STATUSES})
    if order_type and order_type not in ORDER_TYPES:
        raise ValidationError(f"Invalid order_type: {order_type}", details={"valid_types": ORDER_TYPES})

    query = db.session.query(OnlineOrder)
    if branch_id:
        query = query.filter(OnlineOrder.branch_id == branch_id)
    if status:
        query = query.filter(OnlineOrder.status == status)
    if order_type:
        query = query.filter(OnlineOrder.order_type == order_type)
    if customer:
        like = f"%{customer}%"
        query = query.filter(or_(
            OnlineOrder.customer_name.ilike(like),
            OnlineOrder.customer_phone.ilike(like),
            OnlineOrder.order_number.ilike(like),
        ))
    if from_date:
        query = query.filter(OnlineOrder.created_at >= from_date)
    if to_date:
        query = query.filter(OnlineOrder.created_at <= to_date)

    total = query.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 200:
        limit = 200

    orders = query.order_by(OnlineOrder.created_at.desc(), OnlineOrder.id.desc()).offset(offset).limit(limit).all()
    return orders, total


def get_status_history(order_id: int) -> list[OrderStatusHistory]:
    get_order(order_id)
    return (
        db.session.query(OrderStatusHistory)
        .filter_by(order_id=order_id)
        .order_by(OrderStatusHistory.id.asc())
        .all()
    )
