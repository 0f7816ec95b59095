# Overview: Cashier checkout; cart -> sale record -> stock decrement -> session totals.

"""
Direct cashier checkout.

The whole checkout is one database transaction:

    resolve session -> create_transaction -> apply_decrement -> accumulate -> commit

Prices come from the product table, never from the client. VAT is applied
to the discounted subtotal at VAT_RATE_BPS.

Stock decrement is best-effort per item. When a product cannot be
decremented (no inventory row at the branch, for example) the sale still
commits and the failure is reported, unless partial stock application is
disallowed, in which case the whole checkout is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Product
from agripos.auth import ActorContext
from agripos.cart import Cart, CartError
from .concurrency import ItemResult, failed_items, run_with_retry
from .errors import NotFoundError, ServiceError, TransactionError, ValidationError
from . import inventory_service, session_service, transaction_service


DEFAULT_VAT_RATE_BPS = 1200


@dataclass
class CheckoutResult:
    transaction: object
    stock_results: list[ItemResult] = field(default_factory=list)

    @property
    def stock_complete(self) -> bool:
        return not failed_items(self.stock_results)

    def to_dict(self) -> dict:
        txn = self.transaction
        return {
            "transaction": txn.to_dict(include_lines=True),
            "change_cents": txn.payment.change_cents if txn.payment else 0,
            "stock_complete": self.stock_complete,
            "stock_results": [r.to_dict() for r in self.stock_results],
        }


def vat_rate_bps() -> int:
    return int(current_app.config.get("VAT_RATE_BPS", DEFAULT_VAT_RATE_BPS))


def build_cart(lines) -> Cart:
    """Build a cart from request lines using authoritative product prices."""
    if not lines:
        raise ValidationError("Cart is empty")

    cart = Cart()
    for i, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"Line {i + 1} must be an object")
        product_id = line.get("product_id")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationError(f"Line {i + 1}: product_id is required")

        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_active:
            raise ValidationError(f"Product {product.sku} is not active")

        discount = line.get("discount_cents") or 0
        if not isinstance(discount, int) or isinstance(discount, bool):
            raise ValidationError(f"Line {i + 1}: discount_cents must be an integer")
        try:
            cart.add(
                product,
                line.get("quantity", 1),
                discount_cents=discount,
                weight_kg=line.get("weight_kg"),
            )
        except (CartError, ValueError) as e:
            raise ValidationError(f"Line {i + 1}: {e}")

    if cart.is_empty:
        raise ValidationError("Cart is empty")
    return cart


def _partial_allowed(allow_partial_stock: bool | None) -> bool:
    if allow_partial_stock is not None:
        return bool(allow_partial_stock)
    return bool(current_app.config.get("ALLOW_PARTIAL_STOCK_DECREMENT", True))


def commit_sale(
    *,
    actor: ActorContext,
    pos_session,
    data: dict,
    stock_items: list[dict],
    allow_partial_stock: bool | None = None,
) -> CheckoutResult:
    """
    Write the sale, decrement stock and add to session totals in the
    current unit of work. Shared by cashier checkout and order completion.
    Does not commit.
    """
    data = dict(data, pos_session_id=pos_session.id, branch_id=pos_session.branch_id)
    txn = transaction_service.create_transaction(data, actor, commit=False)

    results = inventory_service.apply_decrement(
        branch_id=pos_session.branch_id,
        items=stock_items,
        actor=actor,
        reference_type="transaction",
        reference_id=txn.id,
    )
    failures = failed_items(results)
    if failures:
        if not _partial_allowed(allow_partial_stock):
            raise TransactionError(
                "Stock could not be decremented for every item",
                details={"items": [r.to_dict() for r in failures]},
            )
        current_app.logger.warning(
            "Transaction %s committed with %s stock decrement failure(s)",
            txn.transaction_number,
            len(failures),
        )

    session_service.accumulate(
        pos_session.id,
        total_cents=txn.total_cents,
        discount_cents=txn.discount_cents,
        tax_cents=txn.tax_cents,
    )
    return CheckoutResult(transaction=txn, stock_results=results)


def checkout(actor: ActorContext, payload: dict, *, allow_partial_stock: bool | None = None) -> CheckoutResult:
    """
    Cashier checkout.

    payload: items [{product_id, quantity, weight_kg?, discount_cents?}],
    payment_method, cash_tendered_cents?, reference_number?, customer_id?,
    notes?.
    """
    def _op():
        try:
            cart = build_cart(payload.get("items"))
            rate = vat_rate_bps()
            pos_session = session_service.get_or_create_session(actor)

            data = {
                "customer_id": payload.get("customer_id"),
                "transaction_source": transaction_service.SOURCE_POS,
                "items": [line.to_item_data() for line in cart.lines],
                "subtotal_cents": cart.subtotal_cents,
                "discount_cents": cart.discount_cents,
                "tax_cents": cart.tax_cents(rate),
                "total_cents": cart.total_cents(rate),
                "payment_method": payload.get("payment_method"),
                "cash_tendered_cents": payload.get("cash_tendered_cents"),
                "reference_number": payload.get("reference_number"),
                "notes": payload.get("notes"),
            }
            stock_items = [
                {"product_id": line.product_id, "quantity": line.stock_quantity}
                for line in cart.lines
            ]
            result = commit_sale(
                actor=actor,
                pos_session=pos_session,
                data=data,
                stock_items=stock_items,
                allow_partial_stock=allow_partial_stock,
            )
            db.session.commit()
        except ServiceError:
            db.session.rollback()
            raise

        txn = result.transaction
        current_app.logger.info(
            "Checkout %s committed: total=%s items=%s session=%s",
            txn.transaction_number,
            txn.total_cents,
            len(cart.lines),
            pos_session.session_number,
        )
        return result

    return run_with_retry(_op)
