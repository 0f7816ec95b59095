# Overview: Cashier POS sessions; lifecycle, running totals and end-of-shift reconciliation.

"""
POS session service

A cashier has at most one live (open or suspended) session at a time.

LIFECYCLE:
- open -> suspended -> open (breaks)
- open | suspended -> closed (end of shift, ending cash counted)

Running totals (total_sales, total_transactions, total_taxes,
total_discounts) are only changed by accumulate(), which issues a single
UPDATE ... SET col = col + :delta. No read-modify-write, so concurrent
checkouts on the same session cannot lose an update.

Reconciliation on close:
    expected_cash = starting_cash + cash takings (active cash sales)
    cash_variance = ending_cash - expected_cash
"""

from __future__ import annotations

from sqlalchemy import func, update

from ..extensions import db
from ..models import Branch, PosPayment, PosSession, PosTransaction, PosTransactionItem
from agripos.auth import ActorContext
from agripos.money import qty_str
from agripos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .document_service import SESSION_PREFIX, next_document_number
from .errors import NotFoundError, SessionError, ValidationError


SESSION_OPEN = "open"
SESSION_SUSPENDED = "suspended"
SESSION_CLOSED = "closed"

LIVE_STATUSES = (SESSION_OPEN, SESSION_SUSPENDED)


def get_session(session_id: int) -> PosSession:
    pos_session = db.session.get(PosSession, session_id)
    if pos_session is None:
        raise NotFoundError(f"POS session {session_id} not found")
    return pos_session


def find_live_session(actor: ActorContext) -> PosSession | None:
    return (
        db.session.query(PosSession)
        .filter(
            PosSession.cashier_id == actor.user_id,
            PosSession.branch_id == actor.branch_id,
            PosSession.status.in_(LIVE_STATUSES),
        )
        .order_by(PosSession.opened_at.desc(), PosSession.id.desc())
        .first()
    )


def _new_session(actor: ActorContext, starting_cash_cents: int, notes: str | None) -> PosSession:
    if db.session.get(Branch, actor.branch_id) is None:
        raise NotFoundError(f"Branch {actor.branch_id} not found")

    pos_session = PosSession(
        session_number=next_document_number(branch_id=actor.branch_id, prefix=SESSION_PREFIX),
        cashier_id=actor.user_id,
        branch_id=actor.branch_id,
        status=SESSION_OPEN,
        starting_cash_cents=starting_cash_cents,
        total_sales_cents=0,
        total_transactions=0,
        total_taxes_cents=0,
        total_discounts_cents=0,
        opened_at=utcnow(),
        notes=notes,
    )
    db.session.add(pos_session)
    db.session.flush()
    return pos_session


def get_or_create_session(actor: ActorContext, *, commit: bool = False) -> PosSession:
    """
    Return the cashier's open session at their branch, creating one with
    zero starting cash when none exists.

    A suspended session is not reused; it has to be resumed first.
    """
    pos_session = find_live_session(actor)
    if pos_session is not None:
        if pos_session.status == SESSION_SUSPENDED:
            raise SessionError(
                f"POS session {pos_session.session_number} is suspended; resume it first",
                details={"session_id": pos_session.id},
            )
        return pos_session

    pos_session = _new_session(actor, 0, None)
    if commit:
        db.session.commit()
    return pos_session


def open_session(actor: ActorContext, starting_cash_cents: int = 0, notes: str | None = None) -> PosSession:
    if isinstance(starting_cash_cents, bool) or not isinstance(starting_cash_cents, int):
        raise ValidationError("starting_cash_cents must be an integer")
    if starting_cash_cents < 0:
        raise ValidationError("starting_cash_cents cannot be negative")

    existing = find_live_session(actor)
    if existing is not None:
        raise SessionError(
            f"Cashier already has a {existing.status} session",
            details={"session_id": existing.id, "session_number": existing.session_number},
        )

    pos_session = _new_session(actor, starting_cash_cents, notes)
    db.session.commit()
    return pos_session


def _transition(session_id: int, allowed_from: tuple[str, ...], to_status: str) -> PosSession:
    def _op():
        pos_session = lock_for_update(db.session.query(PosSession).filter_by(id=session_id)).first()
        if pos_session is None:
            raise NotFoundError(f"POS session {session_id} not found")
        if pos_session.status not in allowed_from:
            raise SessionError(
                f"Cannot move session from {pos_session.status} to {to_status}",
                details={"session_id": session_id, "status": pos_session.status},
            )
        pos_session.status = to_status
        db.session.commit()
        return pos_session

    return run_with_retry(_op)


def suspend_session(session_id: int, actor: ActorContext) -> PosSession:
    return _transition(session_id, (SESSION_OPEN,), SESSION_SUSPENDED)


def resume_session(session_id: int, actor: ActorContext) -> PosSession:
    return _transition(session_id, (SESSION_SUSPENDED,), SESSION_OPEN)


def accumulate(session_id: int, *, total_cents: int, discount_cents: int = 0, tax_cents: int = 0) -> None:
    """Add one sale to the session's running totals. Does not commit."""
    result = db.session.execute(
        update(PosSession)
        .where(PosSession.id == session_id)
        .values(
            total_sales_cents=PosSession.total_sales_cents + total_cents,
            total_transactions=PosSession.total_transactions + 1,
            total_taxes_cents=PosSession.total_taxes_cents + tax_cents,
            total_discounts_cents=PosSession.total_discounts_cents + discount_cents,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise NotFoundError(f"POS session {session_id} not found")

    pos_session = db.session.get(PosSession, session_id)
    if pos_session is not None:
        db.session.expire(pos_session, [
            "total_sales_cents",
            "total_transactions",
            "total_taxes_cents",
            "total_discounts_cents",
        ])


def cash_takings(session_id: int) -> int:
    """Cash received for active sales in the session (amount due, not tendered)."""
    return (
        db.session.query(func.coalesce(func.sum(PosPayment.amount_cents), 0))
        .join(PosTransaction, PosTransaction.id == PosPayment.transaction_id)
        .filter(
            PosTransaction.pos_session_id == session_id,
            PosTransaction.status == "active",
            PosPayment.payment_method == "cash",
        )
        .scalar()
    )


def close_session(
    session_id: int,
    actor: ActorContext,
    ending_cash_cents: int,
    notes: str | None = None,
) -> PosSession:
    if isinstance(ending_cash_cents, bool) or not isinstance(ending_cash_cents, int):
        raise ValidationError("ending_cash_cents must be an integer")
    if ending_cash_cents < 0:
        raise ValidationError("ending_cash_cents cannot be negative")

    def _op():
        pos_session = lock_for_update(db.session.query(PosSession).filter_by(id=session_id)).first()
        if pos_session is None:
            raise NotFoundError(f"POS session {session_id} not found")
        if pos_session.status not in LIVE_STATUSES:
            raise SessionError(f"POS session {pos_session.session_number} is already closed")

        expected = pos_session.starting_cash_cents + cash_takings(session_id)
        pos_session.status = SESSION_CLOSED
        pos_session.ending_cash_cents = ending_cash_cents
        pos_session.expected_cash_cents = expected
        pos_session.cash_variance_cents = ending_cash_cents - expected
        pos_session.closed_at = utcnow()
        pos_session.closed_by_user_id = actor.user_id
        if notes:
            pos_session.notes = notes
        db.session.commit()
        return pos_session

    return run_with_retry(_op)


def list_sessions(*, branch_id: int | None = None, status: str | None = None, limit: int = 50) -> list[PosSession]:
    query = db.session.query(PosSession)
    if branch_id:
        query = query.filter(PosSession.branch_id == branch_id)
    if status:
        query = query.filter(PosSession.status == status)
    return query.order_by(PosSession.opened_at.desc(), PosSession.id.desc()).limit(limit).all()


def session_summary(session_id: int, top_n: int = 5) -> dict:
    """Session totals plus payment method breakdown and best-selling products."""
    pos_session = get_session(session_id)

    methods = (
        db.session.query(
            PosPayment.payment_method,
            func.count(PosPayment.id),
            func.coalesce(func.sum(PosPayment.amount_cents), 0),
        )
        .join(PosTransaction, PosTransaction.id == PosPayment.transaction_id)
        .filter(PosTransaction.pos_session_id == session_id, PosTransaction.status == "active")
        .group_by(PosPayment.payment_method)
        .order_by(PosPayment.payment_method.asc())
        .all()
    )

    products = (
        db.session.query(
            PosTransactionItem.product_id,
            PosTransactionItem.product_name,
            func.sum(PosTransactionItem.quantity),
            func.sum(PosTransactionItem.line_total_cents),
        )
        .join(PosTransaction, PosTransaction.id == PosTransactionItem.transaction_id)
        .filter(PosTransaction.pos_session_id == session_id, PosTransaction.status == "active")
        .group_by(PosTransactionItem.product_id, PosTransactionItem.product_name)
        .order_by(func.sum(PosTransactionItem.line_total_cents).desc())
        .limit(top_n)
        .all()
    )

    return {
        "session": pos_session.to_dict(),
        "cash_takings_cents": cash_takings(session_id),
        "payment_breakdown": [
            {"payment_method": method, "count": count, "total_cents": int(total)}
            for method, count, total in methods
        ],
        "top_products": [
            {
                "product_id": product_id,
                "product_name": name,
                "quantity": qty_str(quantity),
                "total_cents": int(total),
            }
            for product_id, name, quantity, total in products
        ],
    }
