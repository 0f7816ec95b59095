# Overview: Transaction writer; creates the immutable sale record (header, items, payment).

"""
Transaction writer

A sale record is written as one unit of work:

    allocate number -> header -> items -> payment -> flush

Either all rows exist or none do. The caller owns the commit (commit=False)
so checkout and order completion can add the stock decrement and session
totals to the same database transaction.

Money invariants checked before anything is written:
- line_total = unit_price * quantity - discount (weight for weight-priced)
- subtotal = sum(line_total)
- total = subtotal + tax
- cash tendered >= total; change = tendered - total (0 for digital methods)
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import PosPayment, PosSession, PosTransaction, PosTransactionItem
from agripos.auth import ActorContext
from agripos.money import multiply_cents, to_quantity
from agripos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .document_service import TXN_PREFIX, next_document_number
from .errors import NotFoundError, SessionError, TransactionError, ValidationError


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_GCASH = "gcash"
METHOD_PAYMAYA = "paymaya"
METHOD_CARD = "card"
METHOD_BANK_TRANSFER = "bank_transfer"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_GCASH,
    METHOD_PAYMAYA,
    METHOD_CARD,
    METHOD_BANK_TRANSFER,
]

SOURCE_POS = "pos"
SOURCE_ONLINE_ORDER = "online_order"

STATUS_ACTIVE = "active"
STATUS_VOID = "void"


def payment_type_for(method: str) -> str:
    return "cash" if method == METHOD_CASH else "digital"


def _require_int(data: dict, key: str, *, allow_none: bool = False) -> int | None:
    value = data.get(key)
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{key} is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    return value


def _normalize_items(raw_items) -> list[dict]:
    if not raw_items:
        raise ValidationError("Transaction must have at least one item")

    items = []
    for i, raw in enumerate(raw_items):
        try:
            quantity = to_quantity(raw.get("quantity"))
            weight = to_quantity(raw["weight_kg"]) if raw.get("weight_kg") is not None else None
        except ValueError as e:
            raise ValidationError(f"Item {i + 1}: {e}")
        if quantity <= 0 or (weight is not None and weight <= 0):
            raise ValidationError(f"Item {i + 1}: quantity must be positive")

        unit_price = _require_int(raw, "unit_price_cents")
        discount = _require_int(raw, "discount_cents", allow_none=True) or 0
        line_total = _require_int(raw, "line_total_cents")
        if unit_price < 0 or discount < 0:
            raise ValidationError(f"Item {i + 1}: price and discount cannot be negative")

        expected = multiply_cents(unit_price, weight if weight is not None else quantity) - discount
        if expected < 0:
            raise ValidationError(
                f"Item {i + 1}: discount exceeds line amount",
                details={"product_id": raw.get("product_id")},
            )
        if line_total != expected:
            raise ValidationError(
                f"Item {i + 1}: line total does not match price x quantity - discount",
                details={"expected": expected, "got": line_total},
            )

        items.append({
            "product_id": _require_int(raw, "product_id"),
            "product_name": raw.get("product_name") or "",
            "product_sku": raw.get("product_sku") or "",
            "unit_of_measure": raw.get("unit_of_measure") or "pc",
            "quantity": quantity,
            "weight_kg": weight,
            "unit_price_cents": unit_price,
            "discount_cents": discount,
            "line_total_cents": line_total,
        })
    return items


def validate_transaction_data(data: dict) -> dict:
    """Check the invariants of a transaction payload; returns normalized values."""
    items = _normalize_items(data.get("items"))

    subtotal = _require_int(data, "subtotal_cents")
    tax = _require_int(data, "tax_cents", allow_none=True) or 0
    total = _require_int(data, "total_cents")
    discount = _require_int(data, "discount_cents", allow_none=True)
    if discount is None:
        discount = sum(item["discount_cents"] for item in items)

    line_sum = sum(item["line_total_cents"] for item in items)
    if subtotal != line_sum:
        raise ValidationError(
            "Subtotal does not match the sum of line totals",
            details={"subtotal_cents": subtotal, "line_total_sum_cents": line_sum},
        )
    if tax < 0:
        raise ValidationError("tax_cents cannot be negative")
    if line_sum + tax != total:
        raise ValidationError(
            "Total does not equal line totals plus tax",
            details={"expected_total_cents": line_sum + tax, "total_cents": total},
        )

    method = data.get("payment_method")
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method: {method}",
            details={"valid_methods": VALID_PAYMENT_METHODS},
        )

    tendered = _require_int(data, "cash_tendered_cents", allow_none=True)
    if method == METHOD_CASH:
        if tendered is None:
            tendered = total
        if tendered < total:
            raise ValidationError(
                "Insufficient payment",
                details={"total_cents": total, "cash_tendered_cents": tendered},
            )
        change = tendered - total
    else:
        tendered = None
        change = 0

    return {
        "items": items,
        "subtotal_cents": subtotal,
        "discount_cents": discount,
        "tax_cents": tax,
        "total_cents": total,
        "payment_method": method,
        "cash_tendered_cents": tendered,
        "change_cents": change,
    }


def create_transaction(data: dict, actor: ActorContext, *, commit: bool = False) -> PosTransaction:
    """
    Write a sale record with its items and payment.

    data: pos_session_id, branch_id, items, subtotal_cents, tax_cents,
    total_cents, payment_method, and optionally customer_id, order_id,
    transaction_source, discount_cents, cash_tendered_cents,
    reference_number, notes.
    """
    values = validate_transaction_data(data)
    session_id = _require_int(data, "pos_session_id")
    branch_id = _require_int(data, "branch_id")

    pos_session = lock_for_update(db.session.query(PosSession).filter_by(id=session_id)).first()
    if pos_session is None:
        raise NotFoundError(f"POS session {session_id} not found")
    if pos_session.status != "open":
        raise SessionError(f"POS session {pos_session.session_number} is {pos_session.status}")
    if pos_session.branch_id != branch_id:
        raise ValidationError("POS session belongs to a different branch")

    try:
        txn = PosTransaction(
            transaction_number=next_document_number(branch_id=branch_id, prefix=TXN_PREFIX),
            pos_session_id=session_id,
            customer_id=data.get("customer_id"),
            cashier_id=actor.user_id,
            branch_id=branch_id,
            order_id=data.get("order_id"),
            transaction_type="sale",
            transaction_source=data.get("transaction_source") or SOURCE_POS,
            subtotal_cents=values["subtotal_cents"],
            discount_cents=values["discount_cents"],
            tax_cents=values["tax_cents"],
            total_cents=values["total_cents"],
            status=STATUS_ACTIVE,
            payment_status="completed",
            notes=data.get("notes"),
        )
        db.session.add(txn)
        db.session.flush()

        for item in values["items"]:
            db.session.add(PosTransactionItem(transaction_id=txn.id, **item))

        db.session.add(PosPayment(
            transaction_id=txn.id,
            payment_method=values["payment_method"],
            payment_type=payment_type_for(values["payment_method"]),
            amount_cents=values["total_cents"],
            tendered_cents=values["cash_tendered_cents"],
            change_cents=values["change_cents"],
            reference_number=data.get("reference_number"),
            payment_status="completed",
            processed_at=utcnow(),
        ))
        db.session.flush()
    except IntegrityError as e:
        db.session.rollback()
        raise TransactionError("Failed to write transaction", details={"cause": str(e.orig)})

    if commit:
        db.session.commit()
    return txn


def get_transaction(transaction_id: int) -> PosTransaction:
    txn = db.session.get(PosTransaction, transaction_id)
    if txn is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return txn


def list_session_transactions(session_id: int) -> list[PosTransaction]:
    return (
        db.session.query(PosTransaction)
        .filter_by(pos_session_id=session_id)
        .order_by(PosTransaction.created_at.asc(), PosTransaction.id.asc())
        .all()
    )


def void_transaction(transaction_id: int, reason: str, actor: ActorContext) -> PosTransaction:
    """
    Void an active transaction.

    Only the status fields change. Stock is not restored and session totals
    are left as accumulated.
    """
    if not reason or not reason.strip():
        raise ValidationError("A void reason is required")

    def _op():
        txn = lock_for_update(db.session.query(PosTransaction).filter_by(id=transaction_id)).first()
        if txn is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if txn.status != STATUS_ACTIVE:
            raise TransactionError(f"Cannot void transaction with status {txn.status}")

        txn.status = STATUS_VOID
        txn.voided_at = utcnow()
        txn.voided_by_user_id = actor.user_id
        txn.void_reason = reason.strip()
        db.session.commit()
        current_app.logger.info("Voided transaction %s: %s", txn.transaction_number, txn.void_reason)
        return txn

    return run_with_retry(_op)
