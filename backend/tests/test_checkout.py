# Overview: Pytest coverage for cashier checkout (sale, stock decrement, session totals).

"""
Checkout Tests

A checkout is one unit of work: sale record, stock decrement and session
totals commit together, or nothing does.
"""

from decimal import Decimal

import pytest

from agripos.auth import ActorContext
from agripos.models import InventoryTransaction, PosSession, PosTransaction
from agripos.services import checkout_service, inventory_service
from agripos.services.errors import NotFoundError, TransactionError, ValidationError
from agripos.time_utils import date_stamp


class TestCheckout:
    def test_cash_sale_end_to_end(self, db_session, branch, actor, vitamins, stock):
        """
        SCENARIO: 2 x 100.00 with 12% VAT, customer hands over 300.00
        EXPECTED: total 224.00, change 76.00, on-hand down by 2, session totals updated
        """
        stock(vitamins, 10)

        result = checkout_service.checkout(actor, {
            "items": [{"product_id": vitamins.id, "quantity": 2}],
            "payment_method": "cash",
            "cash_tendered_cents": 30000,
        })

        txn = result.transaction
        assert txn.subtotal_cents == 20000
        assert txn.tax_cents == 2400
        assert txn.total_cents == 22400
        assert txn.payment.change_cents == 7600
        assert txn.payment.tendered_cents == 30000
        assert txn.payment.payment_type == "cash"
        assert txn.transaction_source == "pos"
        assert txn.transaction_number == f"TXN-{date_stamp()}-{branch.id:03d}-0001"
        assert result.stock_complete

        inv = inventory_service.get_inventory(branch.id, vitamins.id)
        assert inv.quantity_on_hand == Decimal("8")

        pos_session = db_session.get(PosSession, txn.pos_session_id)
        assert pos_session.status == "open"
        assert pos_session.total_sales_cents == 22400
        assert pos_session.total_transactions == 1
        assert pos_session.total_taxes_cents == 2400

        movement = db_session.query(InventoryTransaction).filter_by(type="sale").one()
        assert movement.quantity_delta == Decimal("-2")
        assert movement.reference_id == txn.id

    def test_to_dict_reports_change_and_lines(self, db_session, actor, vitamins, stock):
        stock(vitamins, 5)
        result = checkout_service.checkout(actor, {
            "items": [{"product_id": vitamins.id, "quantity": 1}],
            "payment_method": "cash",
            "cash_tendered_cents": 20000,
        })

        data = result.to_dict()
        assert data["change_cents"] == 20000 - 11200
        assert data["stock_complete"] is True
        assert len(data["transaction"]["items"]) == 1
        assert data["transaction"]["payment"]["amount_cents"] == 11200

    def test_numbers_are_sequential_within_session(self, db_session, branch, actor, vitamins, stock):
        stock(vitamins, 10)
        payload = {"items": [{"product_id": vitamins.id, "quantity": 1}], "payment_method": "gcash"}

        first = checkout_service.checkout(actor, payload).transaction
        second = checkout_service.checkout(actor, payload).transaction

        assert first.pos_session_id == second.pos_session_id
        assert first.transaction_number.endswith("-0001")
        assert second.transaction_number.endswith("-0002")
        assert second.payment.change_cents == 0
        assert second.payment.payment_type == "digital"

    def test_insufficient_payment_writes_nothing(self, db_session, branch, actor, vitamins, stock):
        stock(vitamins, 10)

        with pytest.raises(ValidationError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": vitamins.id, "quantity": 2}],
                "payment_method": "cash",
                "cash_tendered_cents": 20000,
            })

        assert db_session.query(PosTransaction).count() == 0
        assert db_session.query(PosSession).count() == 0
        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("10")

    def test_empty_cart_rejected(self, db_session, actor):
        with pytest.raises(ValidationError):
            checkout_service.checkout(actor, {"items": [], "payment_method": "cash"})

    def test_unknown_product(self, db_session, actor):
        with pytest.raises(NotFoundError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": 99999, "quantity": 1}],
                "payment_method": "cash",
            })

    def test_unknown_branch_writes_nothing(self, db_session, branch, vitamins, stock):
        stock(vitamins, 10)
        stranger = ActorContext(user_id=7, branch_id=branch.id + 999)

        with pytest.raises(NotFoundError):
            checkout_service.checkout(stranger, {
                "items": [{"product_id": vitamins.id, "quantity": 2}],
                "payment_method": "cash",
            })

        assert db_session.query(PosTransaction).count() == 0
        assert db_session.query(PosSession).count() == 0

    def test_oversized_quantity_rejected(self, db_session, actor, vitamins, stock):
        stock(vitamins, 10)
        with pytest.raises(ValidationError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": vitamins.id, "quantity": 1e30}],
                "payment_method": "cash",
            })

    def test_inactive_product_rejected(self, db_session, actor, vitamins, stock):
        stock(vitamins, 10)
        vitamins.is_active = False
        db_session.commit()

        with pytest.raises(ValidationError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": vitamins.id, "quantity": 1}],
                "payment_method": "cash",
            })

    def test_invalid_payment_method(self, db_session, actor, vitamins, stock):
        stock(vitamins, 10)
        with pytest.raises(ValidationError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": vitamins.id, "quantity": 1}],
                "payment_method": "cheque",
            })

    def test_oversell_clamps_at_zero(self, db_session, branch, actor, vitamins, stock):
        """
        SCENARIO: 1 on hand, 3 sold at the counter
        EXPECTED: sale commits, on-hand clamped at 0, result flags the clamp
        """
        stock(vitamins, 1)

        result = checkout_service.checkout(actor, {
            "items": [{"product_id": vitamins.id, "quantity": 3}],
            "payment_method": "cash",
            "cash_tendered_cents": 40000,
        })

        assert result.stock_complete
        assert result.stock_results[0].data["clamped"] is True
        inv = inventory_service.get_inventory(branch.id, vitamins.id)
        assert inv.quantity_on_hand == Decimal("0")

        movement = db_session.query(InventoryTransaction).filter_by(type="sale").one()
        assert movement.quantity_delta == Decimal("-1")
        assert "clamped" in movement.note

    def test_weight_sale_decrements_weight(self, db_session, branch, actor, hog_feed, stock):
        stock(hog_feed, 50)

        result = checkout_service.checkout(actor, {
            "items": [{"product_id": hog_feed.id, "quantity": 1, "weight_kg": "12.5"}],
            "payment_method": "card",
            "reference_number": "AUTH-123",
        })

        assert result.transaction.subtotal_cents == 60625
        inv = inventory_service.get_inventory(branch.id, hog_feed.id)
        assert inv.quantity_on_hand == Decimal("37.5")

    def test_line_discount_lowers_vat_base(self, db_session, actor, vitamins, stock):
        stock(vitamins, 10)
        result = checkout_service.checkout(actor, {
            "items": [{"product_id": vitamins.id, "quantity": 2, "discount_cents": 2000}],
            "payment_method": "gcash",
        })

        txn = result.transaction
        assert txn.subtotal_cents == 18000
        assert txn.discount_cents == 2000
        assert txn.tax_cents == 2160
        assert txn.total_cents == 20160

    def test_missing_inventory_row_partial_allowed(self, db_session, branch, actor, vitamins, dewormer, stock):
        """
        SCENARIO: one product has no inventory row at the branch
        EXPECTED: sale commits, the other item is decremented, the failure is reported
        """
        stock(vitamins, 10)

        result = checkout_service.checkout(actor, {
            "items": [
                {"product_id": vitamins.id, "quantity": 1},
                {"product_id": dewormer.id, "quantity": 1},
            ],
            "payment_method": "gcash",
        }, allow_partial_stock=True)

        assert not result.stock_complete
        by_product = {r.product_id: r for r in result.stock_results}
        assert by_product[vitamins.id].success
        assert not by_product[dewormer.id].success
        assert db_session.query(PosTransaction).count() == 1
        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("9")

    def test_missing_inventory_row_partial_disallowed(self, db_session, branch, actor, vitamins, dewormer, stock):
        stock(vitamins, 10)

        with pytest.raises(TransactionError):
            checkout_service.checkout(actor, {
                "items": [
                    {"product_id": vitamins.id, "quantity": 1},
                    {"product_id": dewormer.id, "quantity": 1},
                ],
                "payment_method": "gcash",
            }, allow_partial_stock=False)

        assert db_session.query(PosTransaction).count() == 0
        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("10")

    def test_partial_default_comes_from_config(self, app, db_session, actor, dewormer, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_PARTIAL_STOCK_DECREMENT", False)

        with pytest.raises(TransactionError):
            checkout_service.checkout(actor, {
                "items": [{"product_id": dewormer.id, "quantity": 1}],
                "payment_method": "gcash",
            })

    def test_vat_rate_from_config(self, app, db_session, actor, vitamins, stock, monkeypatch):
        monkeypatch.setitem(app.config, "VAT_RATE_BPS", 0)
        stock(vitamins, 10)

        result = checkout_service.checkout(actor, {
            "items": [{"product_id": vitamins.id, "quantity": 1}],
            "payment_method": "cash",
        })

        assert result.transaction.tax_cents == 0
        assert result.transaction.total_cents == 10000
        assert result.transaction.payment.change_cents == 0
