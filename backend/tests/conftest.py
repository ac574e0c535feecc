"""
Pytest fixtures for giftbox backend tests.

Provides the app on an in-memory database, a per-test wipe, factories for
users/vendors/stores/catalog items, and a fake payment gateway.
"""

from decimal import Decimal
from itertools import count

import pytest

from giftbox import create_app
from giftbox.extensions import db
from giftbox.models import Product, Service, Store, User, Vendor
from giftbox.services import session_service
from giftbox.services.payment_gateway import ConnectedAccount, Transfer
from giftbox.errors import PaymentGatewayError


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key-for-signing-gift-links',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SITE_URL': 'https://giftbox.test',
        'PAYMENT_API_KEY': '',
        'DEFAULT_COMMISSION_PERCENT': 10.0,
        'DEFAULT_TAX_PERCENT': 8.0,
        'SHIPPING_FLAT_RATE': '9.99',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
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


# =============================================================================
# FACTORIES
# =============================================================================

_seq = count(1)


@pytest.fixture
def make_user(db_session):
    """make_user(role='user', email=None) -> User (password hash is a placeholder)."""
    def _make(role='user', email=None, name=None):
        n = next(_seq)
        user = User(
            email=email or f"{role}{n}@example.com",
            password_hash="x",
            name=name or f"{role.title()} {n}",
            role=role,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_store(db_session, make_user):
    """make_store(status='approved', name=None, payment_account_id=None) -> Store with its vendor."""
    def _make(status='approved', name=None, payment_account_id=None):
        user = make_user('vendor')
        vendor = Vendor(user_id=user.id, vendor_name=f"{user.name} Co", email=user.email)
        db_session.add(vendor)
        db_session.flush()
        store = Store(
            vendor_id=vendor.id,
            name=name or f"Store {vendor.id}",
            status=status,
            payment_account_id=payment_account_id,
            payment_onboarding_complete=bool(payment_account_id),
        )
        db_session.add(store)
        db_session.commit()
        return store
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(store, price="20.00", stock=10, name=None, is_active=True, category="Gifts"):
        product = Product(
            store_id=store.id,
            name=name or f"Product {next(_seq)}",
            price=Decimal(price),
            stock=stock,
            category=category,
            image_urls=["https://img.test/p.png"],
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_service(db_session):
    def _make(store, price="50.00", name=None, is_active=True):
        service = Service(
            store_id=store.id,
            name=name or f"Service {next(_seq)}",
            price=Decimal(price),
            category="Experiences",
            image_urls=[],
            is_active=is_active,
        )
        db_session.add(service)
        db_session.commit()
        return service
    return _make


@pytest.fixture
def token_for(db_session):
    """token_for(user) -> bearer token for a fresh session."""
    def _token(user):
        _session, token = session_service.create_session(user.id)
        return token
    return _token


def order_payload(items, *, order_type="self", shipping="9.99", tax="0.00", subtotal=None, **overrides):
    """Build a create_order body; subtotal defaults to the sum of (price, qty) pairs in items."""
    lines = []
    computed = Decimal("0.00")
    for item, quantity in items:
        key = "product_id" if isinstance(item, Product) else "service_id"
        item_type = "product" if isinstance(item, Product) else "service"
        lines.append({"item_type": item_type, key: item.id, "quantity": quantity})
        computed += Decimal(item.price) * quantity
    subtotal = Decimal(subtotal) if subtotal is not None else computed
    payload = {
        "order_type": order_type,
        "sender_name": "Sam Sender",
        "sender_email": "sam@example.com",
        "sender_phone": "555-0100",
        "sender_address": "1 Sender St",
        "receiver_name": "Riley Receiver",
        "receiver_email": "riley@example.com",
        "items": lines,
        "subtotal": str(subtotal),
        "shipping": shipping,
        "tax": tax,
        "total": str(subtotal + Decimal(shipping) + Decimal(tax)),
    }
    payload.update(overrides)
    return payload


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


# =============================================================================
# PAYMENT GATEWAY
# =============================================================================

class FakeGateway:
    """In-process stand-in for PaymentGateway; records calls, fails on demand."""

    def __init__(self, fail_destinations=(), details_submitted=True):
        self.transfers = []
        self.attempts = []
        self.accounts = []
        self.fail_destinations = set(fail_destinations)
        self.details_submitted = details_submitted

    def create_transfer(self, amount_cents, currency, destination, description=None, *, idempotency_key=None):
        self.attempts.append((amount_cents, idempotency_key))
        if destination in self.fail_destinations:
            raise PaymentGatewayError("Insufficient platform balance")
        transfer = Transfer(
            id=f"tr_{len(self.transfers) + 1}",
            amount_cents=amount_cents,
            currency=currency,
            destination=destination,
        )
        self.transfers.append((transfer, idempotency_key))
        return transfer

    def create_connected_account(self, email=None):
        account = ConnectedAccount(id=f"acct_{len(self.accounts) + 1}")
        self.accounts.append((account, email))
        return account

    def create_onboarding_link(self, account_id, refresh_url, return_url):
        return f"https://connect.test/onboard/{account_id}?return={return_url}"

    def create_dashboard_link(self, account_id):
        return f"https://connect.test/dashboard/{account_id}"

    def retrieve_account(self, account_id):
        return ConnectedAccount(id=account_id, details_submitted=self.details_submitted,
                                payouts_enabled=self.details_submitted)


@pytest.fixture
def fake_gateway(app):
    """Install a FakeGateway as the app's payment gateway for one test."""
    original = app.extensions["payment_gateway"]
    gateway = FakeGateway()
    app.extensions["payment_gateway"] = gateway
    yield gateway
    app.extensions["payment_gateway"] = original
