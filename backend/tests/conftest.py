"""
Pytest fixtures for storeadmin backend tests.

Provides the test database, a store owner with a bearer token, a small
catalog (category, sizes, colors, a product) and a fake payment provider
installed in app.extensions.
"""

from decimal import Decimal

import pytest

from storeadmin import create_app
from storeadmin.extensions import db
from storeadmin.models import Category, Color, Image, Product, Size, Store, User, Variant
from storeadmin.services import session_service
from storeadmin.services.auth_service import hash_password
from storeadmin.services.payment_provider import CheckoutSession, PaymentProvider
from storeadmin.services.repository import CatalogRepository


PASSWORD = "Password123!"
STOREFRONT_URL = "http://shop.test"


class FakePaymentProvider(PaymentProvider):
    """Records every session request; raises fail_with instead when set."""

    def __init__(self, fail_with: Exception | None = None):
        self.calls = []
        self.fail_with = fail_with

    def create_checkout_session(self, **kwargs) -> CheckoutSession:
        self.calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        session_id = f"cs_test_{len(self.calls)}"
        return CheckoutSession(id=session_id, url=f"https://pay.test/{session_id}")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'STRIPE_API_KEY': None,
        'FRONTEND_STORE_URL': STOREFRONT_URL,
        'VARIANT_MIN_QUANTITY': 0,
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


@pytest.fixture(scope='function')
def repo(db_session):
    return CatalogRepository(db_session)


@pytest.fixture(scope='function')
def payment_provider(app):
    """Swap the Stripe provider for a recording fake."""
    original = app.extensions["payment_provider"]
    provider = FakePaymentProvider()
    app.extensions["payment_provider"] = provider
    yield provider
    app.extensions["payment_provider"] = original


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def owner(db_session, password_hash):
    user = User(username="owner", email="owner@store.test", password_hash=password_hash)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_user(db_session, password_hash):
    user = User(username="other", email="other@store.test", password_hash=password_hash)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def store(db_session, owner):
    store = Store(user_id=owner.id, name="Main Store", currency="AUD")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session, other_user):
    store = Store(user_id=other_user.id, name="Other Store", currency="USD")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def category(db_session, store):
    category = Category(store_id=store.id, name="Shirts")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def sizes(db_session, store):
    small = Size(store_id=store.id, name="Small", value="S")
    large = Size(store_id=store.id, name="Large", value="L")
    db_session.add_all([small, large])
    db_session.commit()
    return small, large


@pytest.fixture(scope='function')
def colors(db_session, store):
    black = Color(store_id=store.id, name="Black", value="#000000")
    white = Color(store_id=store.id, name="White", value="#FFFFFF")
    db_session.add_all([black, white])
    db_session.commit()
    return black, white


def make_product(db_session, store, category, *, name="Tee", price="19.99", **fields) -> Product:
    """Helper to create a product with one image."""
    product = Product(
        store_id=store.id,
        category_id=category.id,
        name=name,
        price=Decimal(price),
        images=[Image(url=f"https://img.test/{name.lower()}.png")],
        **fields,
    )
    db_session.add(product)
    db_session.commit()
    return product


def make_variant(db_session, product, size, color, *, quantity=5, is_archived=False) -> Variant:
    """Helper to create a variant row directly."""
    variant = Variant(
        product_id=product.id,
        size_id=size.id,
        color_id=color.id,
        quantity=quantity,
        is_archived=is_archived,
    )
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def product(db_session, store, category):
    return make_product(db_session, store, category)


@pytest.fixture(scope='function')
def owner_headers(db_session, owner):
    _, token = session_service.create_session(owner.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(db_session, other_user):
    _, token = session_service.create_session(other_user.id)
    return auth_headers(token)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
