# Overview: Inventory reservations held for confirmed online orders.

"""
Reservation manager

A reservation is a soft hold: it raises quantity_reserved (and so lowers
quantity_available) without touching quantity_on_hand.

- reserve: one active reservation per order item, expiring after
  RESERVATION_TTL_HOURS (24h by default)
- release: order cancelled or hold expired; the hold is returned
- fulfil: order completed; the hold is dropped because the stock decrement
  already took the goods off on-hand

Every step runs per item in its own savepoint and reports ItemResults
instead of raising. Nothing here commits except expire_reservations.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import InventoryReservation, Product
from agripos.auth import ActorContext
from agripos.money import qty_str, to_quantity
from agripos.time_utils import utcnow
from .concurrency import ItemResult, lock_for_update, run_item_in_savepoint
from .errors import InventoryCheckUnavailable, NotFoundError
from .inventory_service import ZERO, get_inventory, get_locked_inventory, record_movement


RESERVATION_ACTIVE = "active"
RESERVATION_RELEASED = "released"
RESERVATION_FULFILLED = "fulfilled"

DEFAULT_TTL_HOURS = 24


@dataclass
class AvailabilityResult:
    available: bool
    missing_items: list[dict] = field(default_factory=list)
    items: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "missing_items": self.missing_items,
            "items": self.items,
        }


def _required_quantity(item) -> Decimal:
    """Weight for weight-priced items, otherwise the unit quantity."""
    if isinstance(item, dict):
        weight = item.get("weight_kg")
        return to_quantity(weight if weight is not None else item["quantity"])
    return to_quantity(item.stock_quantity)


def _product_id(item) -> int:
    return item["product_id"] if isinstance(item, dict) else item.product_id


def _totals_by_product(items) -> "OrderedDict[int, Decimal]":
    totals: OrderedDict[int, Decimal] = OrderedDict()
    for item in items:
        pid = _product_id(item)
        totals[pid] = totals.get(pid, ZERO) + _required_quantity(item)
    return totals


def _ttl_hours() -> int:
    return int(current_app.config.get("RESERVATION_TTL_HOURS", DEFAULT_TTL_HOURS))


def check_availability(items, branch_id: int) -> AvailabilityResult:
    """
    Compare required quantities against available stock at a branch.

    Lines for the same product are summed. A missing inventory row counts
    as zero available. Raises InventoryCheckUnavailable when the data source
    itself fails, so callers can decide to degrade. The lookups run in a
    savepoint; a failed one is rolled back and leaves the caller's
    transaction usable.
    """
    totals = _totals_by_product(items)
    rows: list[dict] = []
    missing: list[dict] = []
    try:
        with db.session.begin_nested():
            for product_id, required in totals.items():
                inv = get_inventory(branch_id, product_id)
                available = inv.quantity_available if inv is not None else ZERO
                product = db.session.get(Product, product_id)
                row = {
                    "product_id": product_id,
                    "product_name": product.name if product else None,
                    "required": qty_str(required),
                    "available": qty_str(available),
                    "sufficient": available >= required,
                }
                rows.append(row)
                if not row["sufficient"]:
                    missing.append(row)
    except SQLAlchemyError as exc:
        raise InventoryCheckUnavailable(f"Inventory check failed: {exc}") from exc

    return AvailabilityResult(available=not missing, missing_items=missing, items=rows)


def _reserve_one(order_id, branch_id, product_id, quantity, expires_at, actor) -> dict:
    inv = get_locked_inventory(branch_id, product_id)
    if inv is None:
        raise NotFoundError(f"No inventory record for product {product_id} at branch {branch_id}")

    inv.quantity_reserved = (inv.quantity_reserved or ZERO) + quantity
    reservation = InventoryReservation(
        order_id=order_id,
        branch_id=branch_id,
        product_id=product_id,
        quantity=quantity,
        status=RESERVATION_ACTIVE,
        expires_at=expires_at,
    )
    db.session.add(reservation)
    record_movement(
        branch_id=branch_id,
        product_id=product_id,
        movement_type="reservation",
        quantity_delta=quantity,
        reference_type="order",
        reference_id=order_id,
        actor=actor,
    )
    db.session.flush()
    return {"reservation_id": reservation.id, "quantity": qty_str(quantity)}


def reserve(
    *,
    order_id: int,
    branch_id: int,
    items,
    actor: ActorContext | None = None,
    now: datetime | None = None,
) -> list[ItemResult]:
    """Create one active reservation per order item. Does not commit."""
    now = now or utcnow()
    expires_at = now + timedelta(hours=_ttl_hours())

    results: list[ItemResult] = []
    for item in items:
        product_id = _product_id(item)
        quantity = _required_quantity(item)
        results.append(
            run_item_in_savepoint(
                product_id,
                lambda: _reserve_one(order_id, branch_id, product_id, quantity, expires_at, actor),
                step="Reservation",
            )
        )
    return results


def _close_one(reservation: InventoryReservation, new_status: str, movement_type: str, actor, now) -> dict:
    inv = get_locked_inventory(reservation.branch_id, reservation.product_id)
    if inv is not None:
        reserved = (inv.quantity_reserved or ZERO) - reservation.quantity
        inv.quantity_reserved = reserved if reserved > 0 else ZERO

    reservation.status = new_status
    if new_status == RESERVATION_RELEASED:
        reservation.released_at = now
    else:
        reservation.fulfilled_at = now

    record_movement(
        branch_id=reservation.branch_id,
        product_id=reservation.product_id,
        movement_type=movement_type,
        quantity_delta=-reservation.quantity,
        reference_type="order",
        reference_id=reservation.order_id,
        actor=actor,
    )
    db.session.flush()
    return {"reservation_id": reservation.id, "status": new_status}


def _active_reservations(order_id: int) -> list[InventoryReservation]:
    return lock_for_update(
        db.session.query(InventoryReservation)
        .filter_by(order_id=order_id, status=RESERVATION_ACTIVE)
        .order_by(InventoryReservation.id.asc())
    ).all()


def _close_all(reservations, new_status, movement_type, actor, now, step) -> list[ItemResult]:
    results: list[ItemResult] = []
    for reservation in reservations:
        results.append(
            run_item_in_savepoint(
                reservation.product_id,
                lambda: _close_one(reservation, new_status, movement_type, actor, now),
                step=step,
            )
        )
    return results


def release(*, order_id: int, actor: ActorContext | None = None, now: datetime | None = None) -> list[ItemResult]:
    """Release every active reservation of an order. Does not commit."""
    return _close_all(
        _active_reservations(order_id),
        RESERVATION_RELEASED,
        "reservation_release",
        actor,
        now or utcnow(),
        "Reservation release",
    )


def fulfil(*, order_id: int, actor: ActorContext | None = None, now: datetime | None = None) -> list[ItemResult]:
    """Mark every active reservation of an order fulfilled. Does not commit."""
    return _close_all(
        _active_reservations(order_id),
        RESERVATION_FULFILLED,
        "reservation_fulfil",
        actor,
        now or utcnow(),
        "Reservation fulfil",
    )


def list_reservations(order_id: int) -> list[InventoryReservation]:
    return (
        db.session.query(InventoryReservation)
        .filter_by(order_id=order_id)
        .order_by(InventoryReservation.id.asc())
        .all()
    )


def expire_reservations(now: datetime | None = None, actor: ActorContext | None = None) -> int:
    """
    Release active reservations whose expiry has passed and commit.

    Meant to be run by an external scheduler (flask reservations expire).
    Returns the number of reservations released.
    """
    now = now or utcnow()
    expired = lock_for_update(
        db.session.query(InventoryReservation)
        .filter(
            InventoryReservation.status == RESERVATION_ACTIVE,
            InventoryReservation.expires_at <= now,
        )
        .order_by(InventoryReservation.id.asc())
    ).all()

    results = _close_all(expired, RESERVATION_RELEASED, "reservation_release", actor, now, "Reservation expiry")
    db.session.commit()

    released = sum(1 for r in results if r.success)
    if expired:
        current_app.logger.info("Expired %s of %s overdue reservations", released, len(expired))
    return released
