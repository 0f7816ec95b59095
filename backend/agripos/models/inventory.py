from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from agripos.money import qty_str as _qty
from agripos.time_utils import to_utc_z


QUANTITY = db.Numeric(12, 3, asdecimal=True)


class Inventory(db.Model):
    """
    Stock position of one product at one branch.

    quantity_on_hand is changed only by the stock decrement path (and
    receiving/adjustments). quantity_reserved is changed only by the
    reservation path. quantity_available is derived, never stored.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "product_id", name="uq_inventory_branch_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_on_hand = db.Column(QUANTITY, nullable=False, default=Decimal("0"))
    quantity_reserved = db.Column(QUANTITY, nullable=False, default=Decimal("0"))
    reorder_level = db.Column(QUANTITY, nullable=False, default=Decimal("0"))

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("inventory", lazy=True))
    product = db.relationship("Product", backref=db.backref("inventory", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @hybrid_property
    def quantity_available(self):
        return (self.quantity_on_hand or Decimal("0")) - (self.quantity_reserved or Decimal("0"))

    @quantity_available.expression
    def quantity_available(cls):
        return cls.quantity_on_hand - cls.quantity_reserved

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "quantity_on_hand": _qty(self.quantity_on_hand),
            "quantity_reserved": _qty(self.quantity_reserved),
            "quantity_available": _qty(self.quantity_available),
            "reorder_level": _qty(self.reorder_level),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only audit row for every stock or reservation movement.

    TYPES:
    - sale: on-hand decrement after a committed sale
    - reservation / reservation_release / reservation_fulfil: hold changes
    - adjustment: manual stock set or receive
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_branch_product_occurred", "branch_id", "product_id", "occurred_at"),
        db.Index("ix_invtx_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(QUANTITY, nullable=False)

    # What caused the movement ("transaction", "order", "manual")
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity_delta": _qty(self.quantity_delta),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class InventoryReservation(db.Model):
    """
    Soft hold on stock for an online order.

    LIFECYCLE:
    - active: created when the order is confirmed, expires after a TTL
    - released: order cancelled or hold expired
    - fulfilled: order completed (on-hand already decremented)
    """
    __tablename__ = "inventory_reservations"
    __table_args__ = (
        db.Index("ix_reservations_order_status", "order_id", "status"),
        db.Index("ix_reservations_status_expires", "status", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(QUANTITY, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    released_at = db.Column(db.DateTime(timezone=True), nullable=True)
    fulfilled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("OnlineOrder", backref=db.backref("reservations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "quantity": _qty(self.quantity),
            "status": self.status,
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
            "released_at": to_utc_z(self.released_at),
            "fulfilled_at": to_utc_z(self.fulfilled_at),
        }
