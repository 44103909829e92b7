# Overview: Pytest coverage for sales orders and invoicing (fulfillment).

"""
Sales Order Tests

Verifies:
1. Scenario D: invoicing with too little stock fails and changes nothing
2. Scenario E: invoicing decrements stock, writes OUT movements and a receivable
3. Multi-line invoicing is all-or-nothing
4. The guarded decrement catches stock that vanished after the pre-check
5. Transition table law and PENDENTE-only deletion
"""

import pytest
from sqlalchemy import update

from estoque.errors import (
    InsufficientStockError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from estoque.models import AccountsReceivable, Product, SalesOrder, StockMovement
from estoque.models.sales import SALES_ORDER_STATUSES
from estoque.services import purchase_order_service
from estoque.services import sales_service
from estoque.services import stock_service
from estoque.services.sales_service import SALES_ORDER_TRANSITIONS


def _approved_sale(customer, lines):
    order = sales_service.create_sales_order(
        customer.id,
        [
            {"product_id": p.id, "quantity": qty, "unit_price_cents": price}
            for p, qty, price in lines
        ],
    )
    return sales_service.transition_sales_order(order.id, "APROVADA")


def _out_movements(db_session):
    return db_session.query(StockMovement).filter_by(type="OUT").all()


class TestCreateSalesOrder:

    def test_create_uses_its_own_sequence(self, db_session, customer, supplier, product):
        purchase_order_service.create_purchase_order(
            supplier.id, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
        )
        order = sales_service.create_sales_order(
            customer.id, [{"product_id": product.id, "quantity": 2, "unit_price_cents": 2500}]
        )

        assert order.code == "VD-0001"
        assert order.status == "PENDENTE"
        assert order.total_value_cents == 5000
        assert order.to_dict()["customer"]["name"] == customer.name
        assert order.to_dict()["receivable"] is None

    def test_create_has_no_stock_effect(self, db_session, customer, make_product):
        p = make_product(quantity=1)
        sales_service.create_sales_order(
            customer.id, [{"product_id": p.id, "quantity": 50, "unit_price_cents": 100}]
        )
        assert db_session.get(Product, p.id).quantity == 1
        assert _out_movements(db_session) == []

    def test_unknown_customer(self, db_session, product):
        with pytest.raises(NotFoundError):
            sales_service.create_sales_order(
                99999, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
            )

    def test_empty_items(self, db_session, customer):
        with pytest.raises(ValidationError):
            sales_service.create_sales_order(customer.id, [])


class TestInvoicing:

    def test_scenario_d_insufficient_stock(self, db_session, customer, make_product):
        p = make_product(quantity=3)
        order = _approved_sale(customer, [(p, 5, 1000)])

        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.transition_sales_order(order.id, "FATURADA")

        assert exc_info.value.available == 3
        assert exc_info.value.required == 5
        assert db_session.get(SalesOrder, order.id).status == "APROVADA"
        assert db_session.get(Product, p.id).quantity == 3
        assert _out_movements(db_session) == []
        assert db_session.query(AccountsReceivable).count() == 0

    def test_scenario_e_invoice(self, db_session, customer, make_product):
        p = make_product(quantity=10)
        order = _approved_sale(customer, [(p, 5, 1000)])

        order = sales_service.transition_sales_order(order.id, "FATURADA")

        assert order.status == "FATURADA"
        assert db_session.get(Product, p.id).quantity == 5
        movements = _out_movements(db_session)
        assert [(m.product_id, m.quantity, m.reason) for m in movements] == [(p.id, 5, f"Venda {order.code}")]

        receivable = db_session.query(AccountsReceivable).one()
        assert receivable.sales_order_id == order.id
        assert receivable.amount_cents == order.total_value_cents == 5000
        assert receivable.status == "PENDENTE"
        assert order.to_dict()["receivable"]["amount_cents"] == 5000

    def test_multi_line_is_all_or_nothing(self, db_session, customer, make_product):
        a = make_product(quantity=10)
        b = make_product(quantity=1)
        order = _approved_sale(customer, [(a, 4, 100), (b, 2, 100)])

        with pytest.raises(InsufficientStockError) as exc_info:
            sales_service.transition_sales_order(order.id, "FATURADA")

        assert exc_info.value.product_id == b.id
        assert db_session.get(Product, a.id).quantity == 10
        assert db_session.get(Product, b.id).quantity == 1
        assert _out_movements(db_session) == []

    def test_guard_catches_stock_taken_after_precheck(self, db_session, customer, make_product, monkeypatch):
        a = make_product(quantity=10)
        b = make_product(quantity=5)
        order = _approved_sale(customer, [(a, 4, 100), (b, 5, 100)])

        def precheck_then_race(order):
            # A concurrent sale takes b's stock between the check and the write
            db_session.execute(
                update(Product).where(Product.id == b.id).values(quantity=2)
                .execution_options(synchronize_session=False)
            )

        monkeypatch.setattr(sales_service, "_check_stock", precheck_then_race)

        with pytest.raises(InsufficientStockError):
            sales_service.transition_sales_order(order.id, "FATURADA")

        assert db_session.get(SalesOrder, order.id).status == "APROVADA"
        assert db_session.get(Product, a.id).quantity == 10
        assert db_session.get(Product, b.id).quantity == 5
        assert _out_movements(db_session) == []
        assert db_session.query(AccountsReceivable).count() == 0

    def test_failure_creating_receivable_rolls_back(self, db_session, customer, make_product, monkeypatch):
        a = make_product(quantity=10)
        b = make_product(quantity=3)
        order = _approved_sale(customer, [(a, 4, 100), (b, 3, 100)])

        def receivable_insert_fails(**kwargs):
            raise RuntimeError("receivable insert failed")

        monkeypatch.setattr(sales_service, "AccountsReceivable", receivable_insert_fails)

        with pytest.raises(RuntimeError):
            sales_service.transition_sales_order(order.id, "FATURADA")

        assert db_session.get(SalesOrder, order.id).status == "APROVADA"
        assert db_session.get(Product, a.id).quantity == 10
        assert db_session.get(Product, b.id).quantity == 3
        assert _out_movements(db_session) == []
        assert db_session.query(AccountsReceivable).count() == 0
        assert stock_service.reconcile_stock() == []

    def test_invoiced_order_cannot_be_invoiced_again(self, db_session, customer, make_product):
        p = make_product(quantity=10)
        order = _approved_sale(customer, [(p, 5, 1000)])
        sales_service.transition_sales_order(order.id, "FATURADA")

        with pytest.raises(InvalidTransitionError):
            sales_service.transition_sales_order(order.id, "FATURADA")

        assert db_session.get(Product, p.id).quantity == 5
        assert db_session.query(AccountsReceivable).count() == 1

    def test_ledger_holds_after_invoicing(self, db_session, customer, make_product):
        p = make_product(quantity=10)
        order = _approved_sale(customer, [(p, 7, 1000)])
        sales_service.transition_sales_order(order.id, "FATURADA")
        assert stock_service.reconcile_stock() == []

    def test_invoice_locked_rejects_non_approved(self, db_session, customer, product):
        order = sales_service.create_sales_order(
            customer.id, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
        )
        with pytest.raises(InvalidStateError):
            sales_service._invoice_locked(order)
        db_session.rollback()


class TestSalesTransitions:

    @pytest.mark.parametrize("current", SALES_ORDER_STATUSES)
    @pytest.mark.parametrize("target", SALES_ORDER_STATUSES)
    def test_transition_table_law(self, db_session, current, target):
        if target in SALES_ORDER_TRANSITIONS[current]:
            sales_service.check_transition(current, target)
        else:
            with pytest.raises(InvalidTransitionError):
                sales_service.check_transition(current, target)

    def test_pendente_cannot_be_invoiced(self, db_session, customer, product):
        order = sales_service.create_sales_order(
            customer.id, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
        )
        with pytest.raises(InvalidTransitionError):
            sales_service.transition_sales_order(order.id, "FATURADA")
        assert db_session.get(SalesOrder, order.id).status == "PENDENTE"

    def test_cancel_approved(self, db_session, customer, product):
        order = _approved_sale(customer, [(product, 1, 100)])
        order = sales_service.transition_sales_order(order.id, "CANCELADA")
        assert order.status == "CANCELADA"

    def test_delete_only_pendente(self, db_session, customer, product):
        order = _approved_sale(customer, [(product, 1, 100)])
        with pytest.raises(InvalidStateError):
            sales_service.delete_sales_order(order.id)

        pending = sales_service.create_sales_order(
            customer.id, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
        )
        pending_id = pending.id
        sales_service.delete_sales_order(pending_id)
        assert db_session.get(SalesOrder, pending_id) is None

    def test_list_by_status(self, db_session, customer, product):
        _approved_sale(customer, [(product, 1, 100)])
        sales_service.create_sales_order(
            customer.id, [{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}]
        )
        assert len(sales_service.list_sales_orders()) == 2
        assert [o.status for o in sales_service.list_sales_orders(status="APROVADA")] == ["APROVADA"]
