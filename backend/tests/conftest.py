"""
Pytest fixtures for Estoque backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

import pytest

from estoque import create_app
from estoque.config import TestConfig
from estoque.extensions import db
from estoque.models import Category, Customer, Supplier
from estoque.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Ferramentas", description="Ferramentas manuais")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def supplier(db_session):
    sup = Supplier(name="Distribuidora Alfa", cnpj="11.222.333/0001-44", email="compras@alfa.com.br")
    db_session.add(sup)
    db_session.commit()
    return sup


@pytest.fixture(scope='function')
def customer(db_session):
    cust = Customer(name="Maria Souza", cpf_cnpj="123.456.789-00")
    db_session.add(cust)
    db_session.commit()
    return cust


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """Factory: create a product through the service so initial stock hits the ledger."""
    counter = {"n": 0}

    def _make(*, quantity=0, price_cents=1000, min_stock=None, name=None):
        counter["n"] += 1
        patch = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": name or f"Produto {counter['n']}",
            "price_cents": price_cents,
            "quantity": quantity,
            "category_id": category.id,
        }
        if min_stock is not None:
            patch["min_stock"] = min_stock
        return catalog_service.create_product(patch=patch)

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(name="Martelo", price_cents=2500)
