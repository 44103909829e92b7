# Overview: Pytest coverage for payable/receivable settlement.

import pytest

from estoque.errors import InvalidStateError, NotFoundError, ValidationError
from estoque.services import finance_service
from estoque.services import purchase_order_service as po_service
from estoque.services import receive_service
from estoque.services import sales_service


@pytest.fixture
def payable(db_session, supplier, product):
    order = po_service.create_purchase_order(
        supplier.id, [{"product_id": product.id, "quantity": 4, "unit_price_cents": 250}]
    )
    po_service.transition_purchase_order(order.id, "APROVADA")
    receive_service.receive_goods(order.id, [{"product_id": product.id, "received_qty": 4}])
    return finance_service.list_payables()[0]


@pytest.fixture
def receivable(db_session, customer, make_product):
    p = make_product(quantity=5)
    order = sales_service.create_sales_order(
        customer.id, [{"product_id": p.id, "quantity": 2, "unit_price_cents": 900}]
    )
    sales_service.transition_sales_order(order.id, "APROVADA")
    sales_service.transition_sales_order(order.id, "FATURADA")
    return finance_service.list_receivables()[0]


class TestPayables:

    def test_pay(self, db_session, payable):
        paid = finance_service.pay_payable(payable.id)

        assert paid.status == "PAGO"
        assert paid.paid_at is not None
        assert paid.amount_cents == 1000
        assert paid.to_dict()["purchase_order"]["code"] == "PO-0001"

    def test_pay_twice_rejected(self, db_session, payable):
        finance_service.pay_payable(payable.id)
        with pytest.raises(InvalidStateError):
            finance_service.pay_payable(payable.id)

    def test_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            finance_service.pay_payable(99999)

    def test_filter_by_status(self, db_session, payable):
        assert len(finance_service.list_payables(status="PENDENTE")) == 1
        assert finance_service.list_payables(status="PAGO") == []
        with pytest.raises(ValidationError):
            finance_service.list_payables(status="ATRASADO")


class TestReceivables:

    def test_receive(self, db_session, receivable):
        received = finance_service.receive_receivable(receivable.id)

        assert received.status == "RECEBIDO"
        assert received.received_at is not None
        assert received.amount_cents == 1800
        assert received.to_dict()["sales_order"]["code"] == "VD-0001"

    def test_receive_twice_rejected(self, db_session, receivable):
        finance_service.receive_receivable(receivable.id)
        with pytest.raises(InvalidStateError):
            finance_service.receive_receivable(receivable.id)

    def test_filter_by_status(self, db_session, receivable):
        finance_service.receive_receivable(receivable.id)
        assert finance_service.list_receivables(status="PENDENTE") == []
        assert len(finance_service.list_receivables(status="RECEBIDO")) == 1
