# Overview: Pytest coverage for the stock ledger (movements, counter invariant, reconcile).

"""
Stock Ledger Tests

Verifies:
1. Manual IN/OUT adjustments write one movement and move the counter
2. OUT never drives quantity below zero (pre-check and guarded UPDATE)
3. quantity == SUM(IN) - SUM(OUT) after any sequence of operations
4. reconcile_stock() reports drift when the counter is tampered with
"""

import pytest
from sqlalchemy import update

from estoque.errors import InsufficientStockError, NotFoundError, ValidationError
from estoque.extensions import db
from estoque.models import Product, StockMovement
from estoque.services import stock_service
from estoque.services.catalog_service import INITIAL_STOCK_REASON
from estoque.validation import MAX_INTEGER, MAX_QUANTITY


class TestRecordStockMovement:

    def test_in_increments_quantity_and_appends_movement(self, db_session, product):
        movement = stock_service.record_stock_movement(product.id, "IN", 12, reason="Ajuste de inventário")

        assert movement.id is not None
        assert movement.type == "IN"
        assert movement.quantity == 12
        assert movement.reason == "Ajuste de inventário"
        assert db_session.get(Product, product.id).quantity == 12

    def test_out_decrements_quantity(self, db_session, make_product):
        p = make_product(quantity=10)

        stock_service.record_stock_movement(p.id, "OUT", 4)

        assert db_session.get(Product, p.id).quantity == 6
        assert stock_service.get_ledger_quantity(p.id) == 6

    def test_out_exactly_to_zero_is_allowed(self, db_session, make_product):
        p = make_product(quantity=5)

        stock_service.record_stock_movement(p.id, "OUT", 5)

        assert db_session.get(Product, p.id).quantity == 0

    def test_out_beyond_stock_raises_and_writes_nothing(self, db_session, make_product):
        p = make_product(quantity=3)
        before = db_session.query(StockMovement).count()

        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.record_stock_movement(p.id, "OUT", 5)

        assert exc_info.value.available == 3
        assert exc_info.value.required == 5
        assert "Available: 3, required: 5" in exc_info.value.message
        assert db_session.get(Product, p.id).quantity == 3
        assert db_session.query(StockMovement).count() == before

    @pytest.mark.parametrize("qty", [0, -1, "abc", 1.5, True, MAX_QUANTITY + 1, 10**19])
    def test_invalid_quantity_rejected(self, db_session, product, qty):
        with pytest.raises(ValidationError):
            stock_service.record_stock_movement(product.id, "IN", qty)
        assert db_session.query(StockMovement).filter_by(product_id=product.id).count() == 0

    def test_invalid_type_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            stock_service.record_stock_movement(product.id, "ADJUST", 1)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.record_stock_movement(99999, "IN", 1)

    def test_blank_reason_stored_as_null(self, db_session, product):
        movement = stock_service.record_stock_movement(product.id, "IN", 1, reason="   ")
        assert movement.reason is None

    def test_in_past_counter_limit_rejected(self, db_session, product):
        db_session.execute(update(Product).where(Product.id == product.id).values(quantity=MAX_INTEGER - 5))
        db_session.commit()

        with pytest.raises(ValidationError):
            stock_service.record_stock_movement(product.id, "IN", 6)

        assert db_session.get(Product, product.id).quantity == MAX_INTEGER - 5
        assert db_session.query(StockMovement).filter_by(product_id=product.id).count() == 0

        stock_service.record_stock_movement(product.id, "IN", 5)
        assert db_session.get(Product, product.id).quantity == MAX_INTEGER


class TestRecordStockMovementAtomicity:

    @pytest.mark.parametrize("movement_type", ["IN", "OUT"])
    def test_failure_after_write_rolls_back(self, db_session, make_product, monkeypatch, movement_type):
        p = make_product(quantity=10)
        real_apply = stock_service.apply_movement

        def apply_then_fail(**kwargs):
            real_apply(**kwargs)
            raise RuntimeError("connection lost before commit")

        monkeypatch.setattr(stock_service, "apply_movement", apply_then_fail)

        with pytest.raises(RuntimeError):
            stock_service.record_stock_movement(p.id, movement_type, 4)

        assert db_session.get(Product, p.id).quantity == 10
        movements = db_session.query(StockMovement).filter_by(product_id=p.id).all()
        assert [m.reason for m in movements] == [INITIAL_STOCK_REASON]
        assert stock_service.reconcile_stock() == []


class TestGuardedDecrement:
    """apply_movement re-checks stock in the UPDATE itself."""

    def test_guard_rejects_when_stock_vanished_after_read(self, db_session, make_product):
        p = make_product(quantity=5)

        # Another writer empties the shelf behind the session's back
        db_session.execute(
            update(Product).where(Product.id == p.id).values(quantity=1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.apply_movement(product_id=p.id, movement_type="OUT", quantity=3)
        db_session.rollback()

        assert exc_info.value.available == 1
        assert exc_info.value.required == 3

    def test_apply_movement_does_not_commit(self, db_session, product):
        stock_service.apply_movement(product_id=product.id, movement_type="IN", quantity=4)
        db_session.rollback()

        assert db_session.get(Product, product.id).quantity == 0
        assert db_session.query(StockMovement).filter_by(product_id=product.id).count() == 0


class TestLedgerInvariant:

    def test_initial_quantity_is_recorded_in_ledger(self, db_session, make_product):
        p = make_product(quantity=8)

        movements = db_session.query(StockMovement).filter_by(product_id=p.id).all()
        assert len(movements) == 1
        assert movements[0].type == "IN"
        assert movements[0].quantity == 8
        assert movements[0].reason == INITIAL_STOCK_REASON

    def test_counter_matches_ledger_after_mixed_operations(self, db_session, make_product):
        p = make_product(quantity=10)
        stock_service.record_stock_movement(p.id, "OUT", 3)
        stock_service.record_stock_movement(p.id, "IN", 7)
        stock_service.record_stock_movement(p.id, "OUT", 14)
        with pytest.raises(InsufficientStockError):
            stock_service.record_stock_movement(p.id, "OUT", 1)

        assert db_session.get(Product, p.id).quantity == 0
        assert stock_service.get_ledger_quantity(p.id) == 0
        assert stock_service.reconcile_stock() == []

    def test_reconcile_reports_drift(self, db_session, make_product):
        p = make_product(quantity=4)
        db_session.execute(update(Product).where(Product.id == p.id).values(quantity=9))
        db_session.commit()

        drift = stock_service.reconcile_stock()

        assert drift == [{
            "product_id": p.id,
            "sku": p.sku,
            "quantity": 9,
            "ledger_quantity": 4,
            "difference": 5,
        }]


class TestListing:

    def test_movements_newest_first_and_filtered(self, db_session, make_product):
        a = make_product(quantity=1)
        b = make_product(quantity=2)
        stock_service.record_stock_movement(a.id, "IN", 3)

        all_movements = stock_service.list_stock_movements()
        assert [m.id for m in all_movements] == sorted((m.id for m in all_movements), reverse=True)
        assert len(all_movements) == 3

        only_a = stock_service.list_stock_movements(product_id=a.id)
        assert {m.product_id for m in only_a} == {a.id}
        assert len(only_a) == 2

        assert len(stock_service.list_stock_movements(limit=1)) == 1
        assert b.id not in {m.product_id for m in only_a}

    def test_low_stock(self, db_session, make_product):
        low = make_product(quantity=2, min_stock=5)
        edge = make_product(quantity=5, min_stock=5)
        make_product(quantity=20, min_stock=5)

        result = stock_service.list_low_stock()

        assert [p.id for p in result] == [low.id, edge.id]
        assert all(p.is_low_stock for p in result)
