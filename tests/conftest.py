import pytest
from decimal import Decimal

from pos_register import create_app
from pos_register.database import get_session
from pos_register.models import Product, ProductStock, ProductInfo, CartState
from pos_register.services.catalog_service import MemoryCatalog
from pos_register.services.held_sale_service import MemoryHeldSaleStore
from pos_register.services.notification_service import NotificationQueue
from pos_register.services.payment_gateway import OrderHandle, AuthorizationFailed
from pos_register.services.register_service import Register
from pos_register.exceptions import GatewayError


class FakeGateway:
    """Gateway double: records calls and returns scripted outcomes."""

    def __init__(self, outcomes=None, fail_create=False):
        self.outcomes = list(outcomes or [])
        self.fail_create = fail_create
        self.orders = []
        self.authorize_calls = []

    def create_order(self, amount, currency, receipt, customer_info=None):
        if self.fail_create:
            raise GatewayError('Could not create payment order')
        handle = OrderHandle(
            id=f'order_{len(self.orders) + 1}',
            amount=amount,
            currency=currency,
            receipt=receipt,
            notes=dict(customer_info or {})
        )
        self.orders.append(handle)
        return handle

    def authorize(self, handle, display_info=None, checkout=None):
        self.authorize_calls.append((handle, display_info))
        if not self.outcomes:
            return AuthorizationFailed('No scripted outcome', order_id=handle.id)
        outcome = self.outcomes.pop(0)
        return outcome(handle) if callable(outcome) else outcome


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def db_product(session):
    """Product with 10 units in stock, 100.00 + 18% tax."""
    product = Product(
        sku='SKU-001',
        barcode='7790001000011',
        name='Notebook A5',
        category='Stationery',
        active=True,
        sale_price=Decimal('100.00'),
        tax_rate=Decimal('18')
    )
    product.stock = ProductStock(on_hand_qty=10)
    session.add(product)
    session.commit()
    return product


@pytest.fixture
def notebook():
    return ProductInfo(
        id='1',
        name='Notebook A5',
        sku='SKU-001',
        unit_price=Decimal('100.00'),
        tax_rate=Decimal('18'),
        stock_quantity=10,
        barcode='7790001000011',
        category='Stationery'
    )


@pytest.fixture
def pen():
    return ProductInfo(
        id='2',
        name='Gel Pen',
        sku='SKU-002',
        unit_price=Decimal('25.50'),
        tax_rate=Decimal('12'),
        stock_quantity=3,
        barcode='7790001000028'
    )


@pytest.fixture
def catalog(notebook, pen):
    return MemoryCatalog([notebook, pen])


@pytest.fixture
def state():
    return CartState()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return NotificationQueue()


@pytest.fixture
def store():
    return MemoryHeldSaleStore()


@pytest.fixture
def register(catalog, gateway, notifier, store):
    register = Register(
        catalog=catalog,
        gateway=gateway,
        notifier=notifier,
        store=store,
        currency='INR',
        walk_in_name='Walk-in Customer',
        business_name='Test Store'
    )
    register.notifications = notifier
    return register
