"""Shared pytest fixtures for visadesk tests."""

import tempfile
import os
from decimal import Decimal
import pytest

from visadesk.database.factories import create_sqlite_database
from visadesk.domain.audit import AuditService
from visadesk.domain.billing import BillingService
from visadesk.domain.client import ClientService
from visadesk.domain.entities import NewOrderItem
from visadesk.domain.order import OrderService
from visadesk.domain.passport import PassportService
from visadesk.domain.product import ProductService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests that open their own connection
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def audit_service(temp_db):
    """Create an AuditService with a temporary database."""
    return AuditService(temp_db)


@pytest.fixture
def billing_service(temp_db):
    """Create a BillingService with a temporary database."""
    return BillingService(temp_db)


@pytest.fixture
def client_service(temp_db):
    """Create a ClientService with a temporary database."""
    return ClientService(temp_db)


@pytest.fixture
def passport_service(temp_db):
    """Create a PassportService with a temporary database."""
    return PassportService(temp_db)


@pytest.fixture
def product_service(temp_db):
    """Create a ProductService with a temporary database."""
    return ProductService(temp_db)


@pytest.fixture
def order_service(temp_db):
    """Create an OrderService with a temporary database."""
    return OrderService(temp_db)


@pytest.fixture
def sample_client(client_service):
    """Create a sample client."""
    client_id = client_service.create_client(name="Sunrise Travel", remark="agency partner")
    return client_service.get_client(client_id)


@pytest.fixture
def other_client(client_service):
    """Create a second client for cross-client checks."""
    client_id = client_service.create_client(name="Blue Sky Tours")
    return client_service.get_client(client_id)


@pytest.fixture
def sample_passport(passport_service, sample_client):
    """Create a passport belonging to the sample client."""
    passport_id = passport_service.create_passport(
        passport_no="E12345678",
        client_id=sample_client.id,
        country="CN",
        full_name="Li Wei",
    )
    return passport_service.get_passport(passport_id)


@pytest.fixture
def other_passport(passport_service, other_client):
    """Create a passport belonging to the second client."""
    passport_id = passport_service.create_passport(
        passport_no="P99887766",
        client_id=other_client.id,
        country="PH",
        full_name="Ana Cruz",
    )
    return passport_service.get_passport(passport_id)


@pytest.fixture
def sample_products(product_service):
    """Create a visa product and a courier product."""
    visa_id = product_service.create_product(
        name="Japan tourist visa", price=Decimal("60.00"), cost_price=Decimal("35.00")
    )
    courier_id = product_service.create_product(
        name="Courier", price=Decimal("40.00"), cost_price=Decimal("10.00")
    )
    return {
        "visa": product_service.get_product(visa_id),
        "courier": product_service.get_product(courier_id),
    }


@pytest.fixture
def make_order(order_service):
    """Return a helper creating an order with one line per (product, price) pair."""

    def _make(passport_no, products, prices):
        items = [
            NewOrderItem(product_id=product.id, sale_price=Decimal(price), cost_price=product.cost_price)
            for product, price in zip(products, prices)
        ]
        return order_service.create_order(passport_no, items).order

    return _make


@pytest.fixture
def sample_orders(make_order, sample_passport, sample_products):
    """Create two unbilled orders for the sample client totalling 100."""
    visa = sample_products["visa"]
    courier = sample_products["courier"]
    first = make_order(sample_passport.passport_no, [visa], ["60.00"])
    second = make_order(sample_passport.passport_no, [courier], ["40.00"])
    return [first, second]


@pytest.fixture
def sample_bill(billing_service, sample_orders):
    """Create a bill of 100 over both sample orders."""
    return billing_service.create_bill([o.id for o in sample_orders])


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
