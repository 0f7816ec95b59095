from __future__ import annotations

from ..extensions import db
from agripos.time_utils import to_utc_z


class PosSession(db.Model):
    """
    A cashier's working period.

    LIFECYCLE:
    - open: transactions accumulate
    - suspended: on break, no checkouts
    - closed: ending cash counted, variance computed; immutable afterwards

    Running totals are only ever changed with an atomic SQL increment.
    """
    __tablename__ = "pos_sessions"
    __table_args__ = (
        db.Index("ix_pos_sessions_cashier_status", "cashier_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_number = db.Column(db.String(64), nullable=False, unique=True)
    cashier_id = db.Column(db.Integer, nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)

    # Cash tracking (all amounts in cents)
    starting_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    ending_cash_cents = db.Column(db.Integer, nullable=True)
    expected_cash_cents = db.Column(db.Integer, nullable=True)  # starting + cash takings
    cash_variance_cents = db.Column(db.Integer, nullable=True)  # ending - expected

    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_transactions = db.Column(db.Integer, nullable=False, default=0)
    total_taxes_cents = db.Column(db.Integer, nullable=False, default=0)
    total_discounts_cents = db.Column(db.Integer, nullable=False, default=0)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    branch = db.relationship("Branch", backref=db.backref("pos_sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_number": self.session_number,
            "cashier_id": self.cashier_id,
            "branch_id": self.branch_id,
            "status": self.status,
            "starting_cash_cents": self.starting_cash_cents,
            "ending_cash_cents": self.ending_cash_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "cash_variance_cents": self.cash_variance_cents,
            "total_sales_cents": self.total_sales_cents,
            "total_transactions": self.total_transactions,
            "total_taxes_cents": self.total_taxes_cents,
            "total_discounts_cents": self.total_discounts_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "closed_by_user_id": self.closed_by_user_id,
            "notes": self.notes,
        }
