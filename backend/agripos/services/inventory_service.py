# Overview: Stock positions per branch and the post-sale stock decrement.

"""
Inventory invariants

- quantity_on_hand never goes below zero. A sale that sells more than is on
  hand clamps the position at 0 instead of failing (the sale already
  happened at the counter).
- quantity_available = on_hand - reserved is derived and never written.
- Every movement appends an InventoryTransaction row in the same DB
  transaction as the position change.
- The decrement is best-effort per item: each product runs in its own
  savepoint and the caller gets one ItemResult per item.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Inventory, InventoryTransaction, Product
from agripos.auth import ActorContext
from agripos.money import qty_str, to_quantity
from agripos.time_utils import utcnow
from .concurrency import ItemResult, lock_for_update, run_item_in_savepoint
from .errors import NotFoundError, ValidationError


ZERO = Decimal("0")


def record_movement(
    *,
    branch_id: int,
    product_id: int,
    movement_type: str,
    quantity_delta,
    reference_type: str | None = None,
    reference_id: int | None = None,
    note: str | None = None,
    actor: ActorContext | None = None,
) -> InventoryTransaction:
    """Append an audit row. Does not flush or commit."""
    tx = InventoryTransaction(
        branch_id=branch_id,
        product_id=product_id,
        type=movement_type,
        quantity_delta=quantity_delta,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
        actor_user_id=actor.user_id if actor else None,
        occurred_at=utcnow(),
    )
    db.session.add(tx)
    return tx


def get_inventory(branch_id: int, product_id: int) -> Inventory | None:
    return db.session.query(Inventory).filter_by(branch_id=branch_id, product_id=product_id).first()


def get_locked_inventory(branch_id: int, product_id: int) -> Inventory | None:
    return lock_for_update(
        db.session.query(Inventory).filter_by(branch_id=branch_id, product_id=product_id)
    ).first()


def get_available_quantity(branch_id: int, product_id: int) -> Decimal:
    """Available quantity; a missing inventory row counts as zero."""
    inv = get_inventory(branch_id, product_id)
    if inv is None:
        return ZERO
    return inv.quantity_available


def set_stock(
    *,
    branch_id: int,
    product_id: int,
    quantity_on_hand,
    reorder_level=None,
    actor: ActorContext | None = None,
    note: str | None = None,
    commit: bool = True,
) -> Inventory:
    """
    Set the on-hand position of a product at a branch (stock count / seed).

    Creates the inventory row when absent and records the difference as an
    adjustment movement.
    """
    try:
        quantity = to_quantity(quantity_on_hand)
    except ValueError as e:
        raise ValidationError(str(e))
    if quantity < 0:
        raise ValidationError("quantity_on_hand cannot be negative")

    if db.session.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found")

    inv = get_locked_inventory(branch_id, product_id)
    if inv is None:
        inv = Inventory(
            branch_id=branch_id,
            product_id=product_id,
            quantity_on_hand=ZERO,
            quantity_reserved=ZERO,
            reorder_level=ZERO,
        )
        db.session.add(inv)

    delta = quantity - (inv.quantity_on_hand or ZERO)
    inv.quantity_on_hand = quantity
    if reorder_level is not None:
        inv.reorder_level = to_quantity(reorder_level)

    if delta:
        record_movement(
            branch_id=branch_id,
            product_id=product_id,
            movement_type="adjustment",
            quantity_delta=delta,
            reference_type="manual",
            note=note or "Stock set",
            actor=actor,
        )

    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return inv


def receive_stock(
    *,
    branch_id: int,
    product_id: int,
    quantity,
    actor: ActorContext | None = None,
    note: str | None = None,
    commit: bool = True,
) -> Inventory:
    """Add received goods to on-hand."""
    try:
        qty = to_quantity(quantity)
    except ValueError as e:
        raise ValidationError(str(e))
    if qty <= 0:
        raise ValidationError("quantity must be positive")

    inv = get_locked_inventory(branch_id, product_id)
    current = inv.quantity_on_hand if inv is not None else ZERO
    return set_stock(
        branch_id=branch_id,
        product_id=product_id,
        quantity_on_hand=current + qty,
        actor=actor,
        note=note or "Stock received",
        commit=commit,
    )


def _decrement_one(branch_id: int, product_id: int, quantity: Decimal, *, actor, reference_type, reference_id) -> dict:
    inv = get_locked_inventory(branch_id, product_id)
    if inv is None:
        raise NotFoundError(f"No inventory record for product {product_id} at branch {branch_id}")

    before = inv.quantity_on_hand or ZERO
    after = before - quantity
    clamped = after < 0
    if clamped:
        after = ZERO
    inv.quantity_on_hand = after

    record_movement(
        branch_id=branch_id,
        product_id=product_id,
        movement_type="sale",
        quantity_delta=after - before,
        reference_type=reference_type,
        reference_id=reference_id,
        note="Oversold; on-hand clamped at 0" if clamped else None,
        actor=actor,
    )
    db.session.flush()
    return {
        "quantity_before": qty_str(before),
        "quantity_after": qty_str(after),
        "clamped": clamped,
    }


def apply_decrement(
    *,
    branch_id: int,
    items: list[dict],
    actor: ActorContext | None = None,
    reference_type: str = "transaction",
    reference_id: int | None = None,
) -> list[ItemResult]:
    """
    Decrement on-hand for each sold item, one savepoint per item.

    items: [{"product_id": int, "quantity": Decimal}]. A missing inventory
    row or a database error fails that item only. Does not commit.
    """
    results: list[ItemResult] = []
    for item in items:
        product_id = item["product_id"]
        try:
            quantity = to_quantity(item["quantity"])
        except (KeyError, ValueError) as e:
            results.append(ItemResult(product_id=product_id, success=False, error=f"invalid quantity: {e}"))
            continue

        results.append(
            run_item_in_savepoint(
                product_id,
                lambda: _decrement_one(
                    branch_id,
                    product_id,
                    quantity,
                    actor=actor,
                    reference_type=reference_type,
                    reference_id=reference_id,
                ),
                step="Stock decrement",
            )
        )
    return results


def get_low_stock(branch_id: int) -> list[Inventory]:
    """Inventory rows whose available quantity is at or below the reorder level."""
    return (
        db.session.query(Inventory)
        .filter(
            Inventory.branch_id == branch_id,
            Inventory.quantity_available <= Inventory.reorder_level,
        )
        .order_by(Inventory.product_id.asc())
        .all()
    )


def list_movements(branch_id: int, product_id: int, limit: int = 50) -> list[InventoryTransaction]:
    return (
        db.session.query(InventoryTransaction)
        .filter_by(branch_id=branch_id, product_id=product_id)
        .order_by(InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )
