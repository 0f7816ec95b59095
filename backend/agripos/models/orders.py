from __future__ import annotations

from ..extensions import db
from agripos.money import qty_str
from agripos.time_utils import to_utc_z
from .inventory import QUANTITY


class OnlineOrder(db.Model):
    """
    Customer-placed order awaiting fulfilment at a branch.

    STATES:
    - pending_confirmation: placed, nothing reserved
    - for_payment: waiting for payment verification
    - confirmed: stock reserved, estimated ready time set
    - ready_for_pickup / for_dispatch: packed
    - completed: converted into a POS transaction (terminal)
    - cancelled: reservations released (terminal)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_branch_status_created", "branch_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    order_type = db.Column(db.String(16), nullable=False, default="pickup")  # pickup, delivery, reservation
    status = db.Column(db.String(32), nullable=False, default="pending_confirmation", index=True)

    payment_status = db.Column(db.String(32), nullable=False, default="pending")
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    payment_reference = db.Column(db.String(128), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    special_instructions = db.Column(db.Text, nullable=True)
    estimated_ready_time = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by = db.Column(db.Integer, nullable=True)
    ready_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ready_by = db.Column(db.Integer, nullable=True)
    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    dispatched_by = db.Column(db.Integer, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by = db.Column(db.Integer, nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.Integer, nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    # Set when the order is completed and converted into a sale
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("pos_transactions.id", use_alter=True, name="fk_orders_transaction"),
        nullable=True,
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship("OrderItem", backref="order", lazy=True, order_by="OrderItem.id")
    branch = db.relationship("Branch", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def unit_count(self):
        return sum(item.quantity for item in self.items)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "customer_address": self.customer_address,
            "branch_id": self.branch_id,
            "order_type": self.order_type,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "special_instructions": self.special_instructions,
            "estimated_ready_time": to_utc_z(self.estimated_ready_time),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "confirmed_by": self.confirmed_by,
            "ready_at": to_utc_z(self.ready_at),
            "ready_by": self.ready_by,
            "dispatched_at": to_utc_z(self.dispatched_at),
            "dispatched_by": self.dispatched_by,
            "completed_at": to_utc_z(self.completed_at),
            "completed_by": self.completed_by,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
            "transaction_id": self.transaction_id,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)
    unit_of_measure = db.Column(db.String(32), nullable=False, default="pc")

    quantity = db.Column(QUANTITY, nullable=False)
    weight_kg = db.Column(QUANTITY, nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    @property
    def stock_quantity(self):
        return self.weight_kg if self.weight_kg is not None else self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "unit_of_measure": self.unit_of_measure,
            "quantity": qty_str(self.quantity),
            "weight_kg": qty_str(self.weight_kg),
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "notes": self.notes,
        }


class OrderStatusHistory(db.Model):
    """Append-only log of order status transitions."""
    __tablename__ = "order_status_history"
    __table_args__ = (
        db.Index("ix_order_status_history_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    from_status = db.Column(db.String(32), nullable=True)
    to_status = db.Column(db.String(32), nullable=False)
    actor_user_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("OnlineOrder", backref=db.backref("status_history", lazy=True, order_by="OrderStatusHistory.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
