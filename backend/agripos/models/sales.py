from __future__ import annotations

from ..extensions import db
from agripos.money import qty_str
from agripos.time_utils import to_utc_z
from .inventory import QUANTITY


class PosTransaction(db.Model):
    """
    Sale record (header).

    Immutable once written: the only permitted change is the status
    transition active -> void. Header, items and payment are written in one
    database transaction by the transaction writer.
    """
    __tablename__ = "pos_transactions"
    __table_args__ = (
        db.Index("ix_pos_transactions_session_created", "pos_session_id", "created_at"),
        db.Index("ix_pos_transactions_branch_created", "branch_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_number = db.Column(db.String(64), nullable=False, unique=True)

    pos_session_id = db.Column(db.Integer, db.ForeignKey("pos_sessions.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, default="sale")  # sale, return, refund
    transaction_source = db.Column(db.String(16), nullable=False, default="pos")  # pos, online_order

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, void, cancelled
    payment_status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_user_id = db.Column(db.Integer, nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    session = db.relationship("PosSession", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "PosTransactionItem",
        backref="transaction",
        lazy=True,
        order_by="PosTransactionItem.id",
    )
    payment = db.relationship("PosPayment", backref="transaction", uselist=False)

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "pos_session_id": self.pos_session_id,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "branch_id": self.branch_id,
            "order_id": self.order_id,
            "transaction_type": self.transaction_type,
            "transaction_source": self.transaction_source,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "voided_at": to_utc_z(self.voided_at),
            "voided_by_user_id": self.voided_by_user_id,
            "void_reason": self.void_reason,
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payment"] = self.payment.to_dict() if self.payment else None
        return data


class PosTransactionItem(db.Model):
    """Product snapshot as sold: name, sku, quantity and price at time of sale."""
    __tablename__ = "pos_transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("pos_transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)
    unit_of_measure = db.Column(db.String(32), nullable=False, default="pc")

    quantity = db.Column(QUANTITY, nullable=False)
    weight_kg = db.Column(QUANTITY, nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def stock_quantity(self):
        return self.weight_kg if self.weight_kg is not None else self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "unit_of_measure": self.unit_of_measure,
            "quantity": qty_str(self.quantity),
            "weight_kg": qty_str(self.weight_kg),
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }


class PosPayment(db.Model):
    """
    The single payment attached to a sale.

    METHODS: cash, gcash, paymaya, card, bank_transfer.
    amount_cents is what the sale costs; tendered_cents is what the
    customer handed over (cash only); change_cents = tendered - amount.
    """
    __tablename__ = "pos_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("pos_transactions.id"), nullable=False, unique=True)

    payment_method = db.Column(db.String(32), nullable=False, index=True)
    payment_type = db.Column(db.String(16), nullable=False)  # cash, digital
    amount_cents = db.Column(db.Integer, nullable=False)
    tendered_cents = db.Column(db.Integer, nullable=True)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    reference_number = db.Column(db.String(128), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="completed")

    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "payment_method": self.payment_method,
            "payment_type": self.payment_type,
            "amount_cents": self.amount_cents,
            "tendered_cents": self.tendered_cents,
            "change_cents": self.change_cents,
            "reference_number": self.reference_number,
            "payment_status": self.payment_status,
            "processed_at": to_utc_z(self.processed_at),
            "created_at": to_utc_z(self.created_at),
        }
