# Overview: Pytest coverage for stock positions, movements and document numbering.

from datetime import datetime
from decimal import Decimal

import pytest

from agripos.models import DocumentSequence, InventoryTransaction
from agripos.services import document_service, inventory_service
from agripos.services.errors import NotFoundError, ValidationError


class TestStock:
    def test_set_stock_records_adjustment(self, db_session, branch, actor, vitamins):
        inventory_service.set_stock(branch_id=branch.id, product_id=vitamins.id, quantity_on_hand=12, actor=actor)
        inventory_service.set_stock(branch_id=branch.id, product_id=vitamins.id, quantity_on_hand=9, actor=actor)

        deltas = [m.quantity_delta for m in inventory_service.list_movements(branch.id, vitamins.id)]
        assert deltas == [Decimal("-3"), Decimal("12")]

    def test_set_stock_validation(self, db_session, branch, vitamins):
        with pytest.raises(ValidationError):
            inventory_service.set_stock(branch_id=branch.id, product_id=vitamins.id, quantity_on_hand=-1)
        with pytest.raises(NotFoundError):
            inventory_service.set_stock(branch_id=branch.id, product_id=99999, quantity_on_hand=1)

    def test_receive_adds_to_on_hand(self, db_session, branch, hog_feed, stock):
        stock(hog_feed, "10.5")
        inv = inventory_service.receive_stock(branch_id=branch.id, product_id=hog_feed.id, quantity="25.25")
        assert inv.quantity_on_hand == Decimal("35.75")

        with pytest.raises(ValidationError):
            inventory_service.receive_stock(branch_id=branch.id, product_id=hog_feed.id, quantity=0)

    def test_available_quantity(self, db_session, branch, vitamins, dewormer, stock):
        stock(vitamins, 6)
        assert inventory_service.get_available_quantity(branch.id, vitamins.id) == Decimal("6")
        assert inventory_service.get_available_quantity(branch.id, dewormer.id) == Decimal("0")


class TestDecrement:
    def test_per_item_results(self, db_session, branch, actor, vitamins, dewormer, stock):
        stock(vitamins, 5)

        results = inventory_service.apply_decrement(
            branch_id=branch.id,
            items=[
                {"product_id": vitamins.id, "quantity": 2},
                {"product_id": dewormer.id, "quantity": 1},
                {"product_id": vitamins.id, "quantity": "bad"},
            ],
            actor=actor,
            reference_id=77,
        )
        db_session.commit()

        assert [r.success for r in results] == [True, False, False]
        assert results[0].data == {"quantity_before": "5", "quantity_after": "3", "clamped": False}
        assert "No inventory record" in results[1].error
        assert results[2].error.startswith("invalid quantity")

        sale = db_session.query(InventoryTransaction).filter_by(type="sale").one()
        assert sale.reference_type == "transaction"
        assert sale.reference_id == 77
        assert sale.actor_user_id == actor.user_id

    def test_branches_are_separate(self, db_session, branch, other_branch, vitamins, stock):
        stock(vitamins, 5)
        stock(vitamins, 5, other_branch)

        inventory_service.apply_decrement(branch_id=branch.id, items=[{"product_id": vitamins.id, "quantity": 5}])
        db_session.commit()

        assert inventory_service.get_inventory(branch.id, vitamins.id).quantity_on_hand == Decimal("0")
        assert inventory_service.get_inventory(other_branch.id, vitamins.id).quantity_on_hand == Decimal("5")


class TestDocumentNumbers:
    def test_format_and_sequence(self, db_session, branch):
        when = datetime(2026, 3, 2, 8, 30)
        first = document_service.next_document_number(branch_id=branch.id, prefix="TXN", when=when)
        second = document_service.next_document_number(branch_id=branch.id, prefix="TXN", when=when)

        assert first == f"TXN-20260302-{branch.id:03d}-0001"
        assert second == f"TXN-20260302-{branch.id:03d}-0002"

    def test_counters_reset_daily_and_per_prefix(self, db_session, branch):
        day1 = datetime(2026, 3, 2)
        day2 = datetime(2026, 3, 3)
        document_service.next_document_number(branch_id=branch.id, prefix="TXN", when=day1)

        assert document_service.next_document_number(branch_id=branch.id, prefix="TXN", when=day2).endswith("-0001")
        assert document_service.next_document_number(branch_id=branch.id, prefix="ORD", when=day1).endswith("-0001")
        assert db_session.query(DocumentSequence).count() == 3

    def test_counters_are_per_branch(self, db_session, branch, other_branch):
        when = datetime(2026, 3, 2)
        document_service.next_document_number(branch_id=branch.id, prefix="POS", when=when)
        number = document_service.next_document_number(branch_id=other_branch.id, prefix="POS", when=when)
        assert number == f"POS-20260302-{other_branch.id:03d}-0001"

    def test_branch_required(self, db_session):
        with pytest.raises(document_service.DocumentSequenceError):
            document_service.next_document_number(branch_id=None, prefix="TXN")
