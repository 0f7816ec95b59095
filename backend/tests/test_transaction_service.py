# Overview: Pytest coverage for the transaction writer and voids.

from decimal import Decimal

import pytest

from agripos.models import PosPayment, PosTransaction, PosTransactionItem
from agripos.services import inventory_service, session_service, transaction_service
from agripos.services.errors import NotFoundError, SessionError, TransactionError, ValidationError


def sale_payload(product, **overrides):
    """One line of 2 x 100.00 plus 12% VAT."""
    data = {
        "items": [{
            "product_id": product.id,
            "product_name": product.name,
            "product_sku": product.sku,
            "quantity": 2,
            "unit_price_cents": 10000,
            "discount_cents": 0,
            "line_total_cents": 20000,
        }],
        "subtotal_cents": 20000,
        "tax_cents": 2400,
        "total_cents": 22400,
        "payment_method": "cash",
        "cash_tendered_cents": 30000,
    }
    data.update(overrides)
    return data


class TestValidation:
    """Money invariants are checked before anything is written."""

    def test_valid_payload(self, vitamins):
        values = transaction_service.validate_transaction_data(sale_payload(vitamins))
        assert values["change_cents"] == 7600
        assert values["discount_cents"] == 0
        assert values["items"][0]["quantity"] == Decimal("2")

    def test_line_total_mismatch(self, vitamins):
        payload = sale_payload(vitamins)
        payload["items"][0]["line_total_cents"] = 19999
        with pytest.raises(ValidationError) as exc:
            transaction_service.validate_transaction_data(payload)
        assert exc.value.details["expected"] == 20000

    def test_subtotal_mismatch(self, vitamins):
        with pytest.raises(ValidationError):
            transaction_service.validate_transaction_data(sale_payload(vitamins, subtotal_cents=21000))

    def test_total_mismatch(self, vitamins):
        with pytest.raises(ValidationError):
            transaction_service.validate_transaction_data(sale_payload(vitamins, total_cents=22000))

    def test_no_items(self, vitamins):
        with pytest.raises(ValidationError):
            transaction_service.validate_transaction_data(sale_payload(vitamins, items=[]))

    def test_cash_defaults_tender_to_total(self, vitamins):
        values = transaction_service.validate_transaction_data(
            sale_payload(vitamins, cash_tendered_cents=None)
        )
        assert values["cash_tendered_cents"] == 22400
        assert values["change_cents"] == 0

    def test_insufficient_cash(self, vitamins):
        with pytest.raises(ValidationError) as exc:
            transaction_service.validate_transaction_data(sale_payload(vitamins, cash_tendered_cents=22399))
        assert exc.value.message == "Insufficient payment"

    def test_digital_payment_has_no_change(self, vitamins):
        values = transaction_service.validate_transaction_data(
            sale_payload(vitamins, payment_method="paymaya", cash_tendered_cents=50000)
        )
        assert values["cash_tendered_cents"] is None
        assert values["change_cents"] == 0

    def test_negative_discount(self, vitamins):
        payload = sale_payload(vitamins)
        payload["items"][0]["discount_cents"] = -100
        with pytest.raises(ValidationError):
            transaction_service.validate_transaction_data(payload)

    def test_float_amounts_rejected(self, vitamins):
        with pytest.raises(ValidationError):
            transaction_service.validate_transaction_data(sale_payload(vitamins, total_cents=224.0))


class TestCreateTransaction:
    def test_writes_header_items_and_payment(self, db_session, branch, actor, vitamins):
        pos_session = session_service.open_session(actor)
        txn = transaction_service.create_transaction(
            sale_payload(vitamins, pos_session_id=pos_session.id, branch_id=branch.id),
            actor,
            commit=True,
        )

        assert txn.cashier_id == actor.user_id
        assert txn.status == "active"
        assert db_session.query(PosTransactionItem).filter_by(transaction_id=txn.id).count() == 1
        payment = db_session.query(PosPayment).filter_by(transaction_id=txn.id).one()
        assert payment.amount_cents == 22400
        assert payment.change_cents == 7600

    def test_does_not_touch_stock(self, db_session, branch, actor, vitamins, stock):
        stock(vitamins, 10)
        pos_session = session_service.open_session(actor)
        transaction_service.create_transaction(
            sale_payload(vitamins, pos_session_id=pos_session.id, branch_id=branch.id),
            actor,
            commit=True,
        )
        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("10")

    def test_requires_open_session(self, db_session, branch, actor, vitamins):
        pos_session = session_service.open_session(actor)
        session_service.suspend_session(pos_session.id, actor)

        with pytest.raises(SessionError):
            transaction_service.create_transaction(
                sale_payload(vitamins, pos_session_id=pos_session.id, branch_id=branch.id),
                actor,
            )

    def test_session_must_match_branch(self, db_session, branch, other_branch, actor, vitamins):
        pos_session = session_service.open_session(actor)
        with pytest.raises(ValidationError):
            transaction_service.create_transaction(
                sale_payload(vitamins, pos_session_id=pos_session.id, branch_id=other_branch.id),
                actor,
            )

    def test_unknown_session(self, db_session, branch, actor, vitamins):
        with pytest.raises(NotFoundError):
            transaction_service.create_transaction(
                sale_payload(vitamins, pos_session_id=99999, branch_id=branch.id),
                actor,
            )


class TestVoid:
    def _sale(self, branch, actor, vitamins):
        pos_session = session_service.open_session(actor)
        return transaction_service.create_transaction(
            sale_payload(vitamins, pos_session_id=pos_session.id, branch_id=branch.id),
            actor,
            commit=True,
        )

    def test_void_marks_status_only(self, db_session, branch, actor, vitamins):
        txn = self._sale(branch, actor, vitamins)

        voided = transaction_service.void_transaction(txn.id, "  wrong item scanned ", actor)

        assert voided.status == "void"
        assert voided.void_reason == "wrong item scanned"
        assert voided.voided_by_user_id == actor.user_id
        assert voided.voided_at is not None
        assert voided.total_cents == 22400

    def test_void_requires_reason(self, db_session, branch, actor, vitamins):
        txn = self._sale(branch, actor, vitamins)
        with pytest.raises(ValidationError):
            transaction_service.void_transaction(txn.id, "   ", actor)

    def test_cannot_void_twice(self, db_session, branch, actor, vitamins):
        txn = self._sale(branch, actor, vitamins)
        transaction_service.void_transaction(txn.id, "duplicate", actor)

        with pytest.raises(TransactionError):
            transaction_service.void_transaction(txn.id, "again", actor)
        assert db_session.get(PosTransaction, txn.id).void_reason == "duplicate"

    def test_void_unknown(self, db_session, actor):
        with pytest.raises(NotFoundError):
            transaction_service.void_transaction(99999, "nope", actor)
